"""
Regressors Module
=================

Responsibility:
- Concrete base regression models usable standalone or as stepwise delegates.
- OLSRegressor / LinearPValueRegressor report per-feature p-values.
- SklearnRegressor adapts plain scikit-learn estimators (no p-values).
"""

from .ols_regressor import OLSRegressor
from .linear_pvalue_regressor import LinearPValueRegressor
from .sklearn_regressor import SklearnRegressor

__all__ = ['OLSRegressor', 'LinearPValueRegressor', 'SklearnRegressor']
