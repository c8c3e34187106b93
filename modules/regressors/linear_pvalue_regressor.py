import numpy as np
import pandas as pd
from scipy import stats
from typing import Any, Dict
from sklearn.linear_model import LinearRegression

from modules.base.base_regressor import SignificanceReportingRegressor
from utils.exceptions import ModelTrainingError


class LinearPValueRegressor(SignificanceReportingRegressor):
    """
    scikit-learn LinearRegression with classical two-sided t-test p-values
    for every coefficient, including the constant column.
    """

    uses_constant_column = True

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        X_arr = X.to_numpy(dtype=float)
        y_arr = y.to_numpy(dtype=float)
        n, p = X_arr.shape

        dof = n - p
        if dof <= 0:
            raise ModelTrainingError(
                f"Not enough samples ({n}) to estimate {p} coefficients with p-values."
            )

        # Intercept is carried by the constant column
        estimator = LinearRegression(fit_intercept=False)
        estimator.fit(X_arr, y_arr)

        residuals = y_arr - estimator.predict(X_arr)
        sigma2 = float(residuals @ residuals) / dof
        cov = sigma2 * np.linalg.pinv(X_arr.T @ X_arr)
        std_err = np.sqrt(np.clip(np.diag(cov), 0.0, None))

        with np.errstate(divide='ignore', invalid='ignore'):
            t_stats = estimator.coef_ / std_err
        p_values = 2.0 * stats.t.sf(np.abs(t_stats), dof)

        return {
            'estimator': estimator,
            'pvalues': dict(zip(X.columns, p_values.astype(float))),
        }

    def _predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.model_['estimator'].predict(X.to_numpy(dtype=float))

    def feature_significance(self) -> Dict[str, float]:
        self._ensure_loaded()
        return {name: float(p) for name, p in self.model_['pvalues'].items()}
