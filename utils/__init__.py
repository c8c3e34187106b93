"""
Utility package setup.

Enables pandas Copy-on-Write globally so dataset copies taken during elimination
stay cheap until a column set actually diverges.
"""

import pandas as pd

# Copy-on-Write is the only mode from pandas 3.0 on; the option is deprecated there.
if int(pd.__version__.split('.')[0]) < 3:
    pd.options.mode.copy_on_write = True
