"""
Evaluation Engine Module
========================

Responsibility:
- Goodness-of-fit metrics (R2, adjusted R2, RMSE, MAE) for fitted regressors.
"""

from .regression_metrics import compute_regression_metrics

__all__ = ['compute_regression_metrics']
