from .base_regressor import BaseRegressor, SignificanceReportingRegressor

__all__ = ['BaseRegressor', 'SignificanceReportingRegressor']
