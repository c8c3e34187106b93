import inspect
import numpy as np
import pandas as pd
from typing import Any, Dict, Optional
from sklearn.ensemble import (
    ExtraTreesRegressor,
    RandomForestRegressor,
    GradientBoostingRegressor,
    HistGradientBoostingRegressor,
)
from sklearn.neighbors import KNeighborsRegressor
from sklearn.linear_model import (
    LinearRegression,
    Ridge,
    Lasso,
    ElasticNet,
    BayesianRidge,
    HuberRegressor,
)
from sklearn.svm import SVR
from sklearn.tree import DecisionTreeRegressor

from modules.base.base_regressor import BaseRegressor
from utils.exceptions import ConfigurationError


class SklearnRegressor(BaseRegressor):
    """
    Adapts a single-output scikit-learn estimator to the regressor interface.
    These models do not report p-values.
    """

    ESTIMATORS = {
        # Linear
        'LinearRegression': LinearRegression,
        'Ridge': Ridge,
        'Lasso': Lasso,
        'ElasticNet': ElasticNet,
        'BayesianRidge': BayesianRidge,
        'HuberRegressor': HuberRegressor,

        # Trees / Ensembles
        'DecisionTreeRegressor': DecisionTreeRegressor,
        'ExtraTreesRegressor': ExtraTreesRegressor,
        'RandomForestRegressor': RandomForestRegressor,
        'GradientBoostingRegressor': GradientBoostingRegressor,
        'HistGradientBoostingRegressor': HistGradientBoostingRegressor,

        # Kernel / Neighbors
        'SVR': SVR,
        'KNeighborsRegressor': KNeighborsRegressor,
    }

    def __init__(self, name: str, config: Dict[str, Any],
                 training_parameters: Optional[Dict[str, Any]] = None,
                 logger=None, estimator_name: str = 'LinearRegression'):
        if estimator_name not in self.ESTIMATORS:
            raise ConfigurationError(
                f"Unknown estimator: {estimator_name}. Available: {list(self.ESTIMATORS)}"
            )
        self.estimator_name = estimator_name
        super().__init__(name, config, training_parameters, logger)

    @property
    def kind(self) -> str:
        return self.estimator_name

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        if X.shape[1] == 0:
            raise ValueError(f"{self.estimator_name} requires at least one feature column.")
        estimator_class = self.ESTIMATORS[self.estimator_name]
        estimator = estimator_class(**self._filter_params(estimator_class, self.training_parameters))
        estimator.fit(X, y)
        return estimator

    def _predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.model_.predict(X)

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]

        # Always allow **kwargs if the model supports it
        has_kwargs = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())

        if has_kwargs:
            return params

        return {k: v for k, v in params.items() if k in valid_keys}
