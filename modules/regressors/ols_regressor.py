import numpy as np
import pandas as pd
import statsmodels.api as sm
from typing import Any, Dict

from modules.base.base_regressor import SignificanceReportingRegressor


class OLSRegressor(SignificanceReportingRegressor):
    """
    Ordinary least squares via statsmodels.

    Training parameters:
        cov_type: Covariance estimator passed to ``OLS.fit`` (default 'nonrobust').
        missing: NaN handling passed to ``OLS`` ('none', 'drop', 'raise').
    """

    uses_constant_column = True

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        cov_type = self.training_parameters.get('cov_type', 'nonrobust')
        missing = self.training_parameters.get('missing', 'none')

        model = sm.OLS(y.astype(float), X.astype(float), missing=missing)
        results = model.fit(cov_type=cov_type)
        self.logger.debug(f"OLS fitted: R2={results.rsquared:.4f}, df_resid={results.df_resid:.0f}")
        return results

    def _predict(self, X: pd.DataFrame) -> np.ndarray:
        return np.asarray(self.model_.predict(X.astype(float)))

    def feature_significance(self) -> Dict[str, float]:
        self._ensure_loaded()
        return {name: float(p) for name, p in self.model_.pvalues.items()}
