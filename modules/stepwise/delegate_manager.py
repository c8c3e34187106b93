import logging
from typing import Any, Dict, Optional

from modules.base.base_regressor import BaseRegressor
from modules.dataset import Dataset
from modules.model_factory import ModelFactory
from modules.stepwise.training_parameters import StepwiseTrainingParameters
from utils import constants


class DelegateLifecycleManager:
    """
    Creates, trains, scores and disposes base-model delegates of one stepwise model.

    All delegates share the storage namespace ``<name>/delegate``; at most one
    is live at any time. Creating a new delegate deletes the previous one
    (memory and persisted state) unless it was handed over with ``release``.
    """

    def __init__(self, name: str, config: Dict[str, Any],
                 training_parameters: StepwiseTrainingParameters,
                 logger: Optional[logging.Logger] = None):
        self.namespace = delegate_namespace(name)
        self.config = config
        self.training_parameters = training_parameters
        self.logger = logger or logging.getLogger(__name__)

        self.live: Optional[BaseRegressor] = None
        self.trainings = 0

    def create(self) -> BaseRegressor:
        """New untrained delegate bound to the shared namespace and config."""
        self.discard()
        params = self.training_parameters
        self.live = ModelFactory.create(
            params.base_model_kind,
            self.namespace,
            self.config,
            params.base_model_training_config,
            self.logger,
        )
        return self.live

    def train(self, dataset: Dataset) -> BaseRegressor:
        """
        Creates a delegate and fits it on ``dataset``.
        A delegate whose training fails is deleted before the error propagates.
        """
        delegate = self.create()
        self.trainings += 1
        try:
            delegate.fit(dataset)
        except Exception:
            self.discard()
            raise
        return delegate

    def train_and_score(self, dataset: Dataset) -> Dict[str, float]:
        """
        Trains a delegate and returns its significance map.
        The delegate stays live until ``discard`` or ``release``.
        """
        delegate = self.train(dataset)
        try:
            return dict(delegate.feature_significance())
        except Exception:
            self.discard()
            raise

    def train_final(self, dataset: Dataset) -> BaseRegressor:
        """Trains a delegate and hands it over to the caller."""
        self.train(dataset)
        return self.release()

    def release(self) -> BaseRegressor:
        """Hands the live delegate to the caller; the manager no longer owns it."""
        delegate, self.live = self.live, None
        return delegate

    def discard(self) -> None:
        """Deletes the live delegate, including its persisted state."""
        if self.live is not None:
            self.live.delete()
            self.live = None


def delegate_namespace(name: str) -> str:
    return f"{name}/{constants.DELEGATE_NAMESPACE}"
