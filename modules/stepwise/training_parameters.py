import math
import numbers
from typing import Any, Dict, Optional

from modules.model_factory import ModelFactory
from utils.exceptions import ConfigurationError
from utils import constants


class StepwiseTrainingParameters:
    """
    Validated training parameters of a stepwise regression.

    Every field is checked when set, including in the constructor, so an
    instance can never hold a base model kind without p-value support.

    Attributes:
        base_model_kind: Registered model kind used for every delegate.
        max_iterations: Bound on elimination rounds; None means unbounded.
        a_out: Features with p-value <= a_out are retained.
        base_model_training_config: Forwarded unchanged to every delegate.
    """

    def __init__(self,
                 base_model_kind: str = constants.DEFAULT_BASE_MODEL,
                 max_iterations: Optional[int] = None,
                 a_out: float = constants.DEFAULT_A_OUT,
                 base_model_training_config: Optional[Dict[str, Any]] = None):
        self.base_model_kind = base_model_kind
        self.max_iterations = max_iterations
        self.a_out = a_out
        self.base_model_training_config = base_model_training_config

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "StepwiseTrainingParameters":
        """Builds parameters from the 'stepwise' section of a configuration dict."""
        section = config.get('stepwise', {})
        return cls(
            base_model_kind=section.get('base_model', constants.DEFAULT_BASE_MODEL),
            max_iterations=section.get('max_iterations'),
            a_out=section.get('a_out', constants.DEFAULT_A_OUT),
            base_model_training_config=section.get('base_model_params'),
        )

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "StepwiseTrainingParameters":
        return cls(
            base_model_kind=payload['base_model_kind'],
            max_iterations=payload.get('max_iterations'),
            a_out=payload.get('a_out', constants.DEFAULT_A_OUT),
            base_model_training_config=payload.get('base_model_training_config'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'base_model_kind': self.base_model_kind,
            'max_iterations': self.max_iterations,
            'a_out': self.a_out,
            'base_model_training_config': self.base_model_training_config,
        }

    # --- max_iterations ---

    @property
    def max_iterations(self) -> Optional[int]:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: Optional[int]) -> None:
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ConfigurationError(f"max_iterations must be an integer or None, got {value!r}.")
            if value < 0:
                raise ConfigurationError(f"max_iterations must be >= 0, got {value}.")
            value = int(value)
        self._max_iterations = value

    # --- a_out ---

    @property
    def a_out(self) -> float:
        return self._a_out

    @a_out.setter
    def a_out(self, value: float) -> None:
        if isinstance(value, bool) or not isinstance(value, numbers.Real) or math.isnan(value):
            raise ConfigurationError(f"a_out must be a number in (0, 1], got {value!r}.")
        if not (0.0 < value <= 1.0):
            raise ConfigurationError(f"a_out must be in (0, 1], got {value}.")
        self._a_out = float(value)

    @property
    def significance_exit_threshold(self) -> float:
        return self.a_out

    @significance_exit_threshold.setter
    def significance_exit_threshold(self, value: float) -> None:
        self.a_out = value

    # --- base_model_kind ---

    @property
    def base_model_kind(self) -> str:
        return self._base_model_kind

    @base_model_kind.setter
    def base_model_kind(self, kind: str) -> None:
        if not ModelFactory.is_registered(kind):
            raise ConfigurationError(
                f"Unknown base model kind: {kind!r}. Available: {ModelFactory.get_available_models()}"
            )
        if not ModelFactory.supports_significance(kind):
            raise ConfigurationError(
                f"The regression model '{kind}' does not report feature p-values and cannot be "
                f"used for stepwise regression. Compatible: {ModelFactory.get_significance_models()}"
            )
        self._base_model_kind = kind

    # --- base_model_training_config ---

    @property
    def base_model_training_config(self) -> Dict[str, Any]:
        return self._base_model_training_config

    @base_model_training_config.setter
    def base_model_training_config(self, value: Optional[Dict[str, Any]]) -> None:
        if value is not None and not isinstance(value, dict):
            raise ConfigurationError(f"base_model_training_config must be a dict, got {type(value).__name__}.")
        self._base_model_training_config = value if value is not None else {}

    def __repr__(self) -> str:
        return (f"StepwiseTrainingParameters(base_model_kind={self.base_model_kind!r}, "
                f"max_iterations={self.max_iterations}, a_out={self.a_out})")
