import numpy as np
from typing import Dict, Any
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score


def compute_regression_metrics(y_true, y_pred, n_features: int = 0) -> Dict[str, Any]:
    """
    Standard goodness-of-fit metrics for a fitted regressor.

    Adjusted R2 is NaN when there are not enough samples to support the
    feature count.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    n = len(y_true)

    r2 = float(r2_score(y_true, y_pred)) if n > 1 else np.nan
    if n - n_features - 1 > 0 and not np.isnan(r2):
        adj_r2 = 1.0 - (1.0 - r2) * (n - 1) / (n - n_features - 1)
    else:
        adj_r2 = np.nan

    return {
        'r2': r2,
        'adj_r2': float(adj_r2),
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'n_samples': int(n),
        'n_features': int(n_features),
    }
