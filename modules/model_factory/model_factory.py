import logging
from typing import Dict, Any, List, Optional, Type

from modules.base.base_regressor import BaseRegressor, SignificanceReportingRegressor
from modules.regressors import OLSRegressor, LinearPValueRegressor, SklearnRegressor
from utils.exceptions import ConfigurationError


class ModelFactory:
    """
    Factory for creating regression models by kind name.
    Tracks which kinds implement the significance-reporting capability.
    """

    # Models that report per-feature p-values (usable as stepwise base models)
    SIGNIFICANCE_MODELS: Dict[str, Type[SignificanceReportingRegressor]] = {
        'OLSRegressor': OLSRegressor,
        'LinearPValueRegressor': LinearPValueRegressor,
    }

    # Plain regressors without p-values; scikit-learn estimators wrapped by name
    PLAIN_MODELS: Dict[str, Type[BaseRegressor]] = {}

    @classmethod
    def create(cls, kind: str, name: str, config: Dict[str, Any],
               params: Optional[Dict[str, Any]] = None,
               logger: Optional[logging.Logger] = None) -> BaseRegressor:
        """
        Create and return a model bound to storage namespace ``name``.
        """
        if params is None:
            params = {}

        # 1. Check Significance-Reporting Models
        if kind in cls.SIGNIFICANCE_MODELS:
            return cls.SIGNIFICANCE_MODELS[kind](name, config, params, logger)

        # 2. Check Registered Plain Models
        elif kind in cls.PLAIN_MODELS:
            return cls.PLAIN_MODELS[kind](name, config, params, logger)

        # 3. Check scikit-learn Estimators
        elif kind in SklearnRegressor.ESTIMATORS:
            return SklearnRegressor(name, config, params, logger, estimator_name=kind)

        else:
            raise ConfigurationError(f"Unknown model kind: {kind}. Available: {cls.get_available_models()}")

    @classmethod
    def register(cls, kind: str, model_class: Type[BaseRegressor]) -> None:
        """
        Register a custom regressor class under ``kind``.
        The capability is recorded from the class's declared interface.
        """
        if not (isinstance(model_class, type) and issubclass(model_class, BaseRegressor)):
            raise ConfigurationError(f"{model_class!r} is not a BaseRegressor subclass.")

        cls.SIGNIFICANCE_MODELS.pop(kind, None)
        cls.PLAIN_MODELS.pop(kind, None)
        if issubclass(model_class, SignificanceReportingRegressor):
            cls.SIGNIFICANCE_MODELS[kind] = model_class
        else:
            cls.PLAIN_MODELS[kind] = model_class

    @classmethod
    def unregister(cls, kind: str) -> None:
        cls.SIGNIFICANCE_MODELS.pop(kind, None)
        cls.PLAIN_MODELS.pop(kind, None)

    @classmethod
    def is_registered(cls, kind: str) -> bool:
        return kind in cls.get_available_models()

    @classmethod
    def supports_significance(cls, kind: str) -> bool:
        """True if ``kind`` reports per-feature p-values."""
        return kind in cls.SIGNIFICANCE_MODELS

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported model kinds."""
        return (list(cls.SIGNIFICANCE_MODELS.keys()) + list(cls.PLAIN_MODELS.keys())
                + list(SklearnRegressor.ESTIMATORS.keys()))

    @classmethod
    def get_significance_models(cls) -> List[str]:
        return list(cls.SIGNIFICANCE_MODELS.keys())
