import abc
import time
import logging
import numpy as np
import pandas as pd
from typing import Any, Dict, List, Optional, Union

from modules.dataset import Dataset
from modules.storage import ModelStorage
from modules.evaluation_engine.regression_metrics import compute_regression_metrics
from utils.exceptions import DataValidationError, ModelStateError, PredictionError, ModelTrainingError
from utils.error_handling import handle_engine_errors
from utils import constants


class BaseRegressor(abc.ABC):
    """
    Abstract base class for all regression models.

    Provides common functionality for:
    - Configuration, logger and storage namespace attachment.
    - Persisting fitted state on ``fit`` and lazily restoring it on ``predict``.
    - ``close`` (release memory) versus ``delete`` (release persisted state).
    """

    # Subclasses that model an intercept through the reserved constant column
    uses_constant_column = False

    def __init__(self, name: str, config: Dict[str, Any],
                 training_parameters: Optional[Dict[str, Any]] = None,
                 logger: Optional[logging.Logger] = None):
        self.name = name
        self.config = config
        self.logger = logger or logging.getLogger(self.__class__.__module__)
        self.training_parameters = dict(training_parameters or {})
        self.storage = ModelStorage(config, self.logger)

        self.model_: Any = None
        self.feature_names_: Optional[List[str]] = None
        self.target_column_: Optional[str] = None

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    @property
    def is_fitted(self) -> bool:
        return self.model_ is not None

    @abc.abstractmethod
    def _fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        """
        Fits the underlying estimator and returns the state to persist.
        This should be implemented by subclasses.
        """
        raise NotImplementedError("Subclasses must implement _fit.")

    @abc.abstractmethod
    def _predict(self, X: pd.DataFrame) -> np.ndarray:
        raise NotImplementedError("Subclasses must implement _predict.")

    @handle_engine_errors("Training", wrap_as=ModelTrainingError)
    def fit(self, dataset: Dataset) -> "BaseRegressor":
        """
        Train on ``dataset`` and persist the fitted state in this model's namespace.
        """
        if dataset is None:
            raise DataValidationError("Cannot fit on a missing dataset.")

        self.target_column_ = dataset.target_column
        X = self._design_matrix(dataset.features())
        y = dataset.target()
        self.logger.debug(f"Training {self.kind} on {len(X)} samples with {X.shape[1]} columns.")

        start_time = time.time()
        self.model_ = self._fit(X, y)
        duration = time.time() - start_time

        self.feature_names_ = list(X.columns)
        self._save(duration)
        return self

    def predict(self, data: Union[Dataset, pd.DataFrame]) -> pd.Series:
        """
        Predict for ``data`` using only the columns this model was trained on.
        """
        self._ensure_loaded()
        frame = data.data if isinstance(data, Dataset) else data

        X = self._design_matrix(frame)
        missing = sorted(set(self.feature_names_) - set(X.columns), key=str)
        if missing:
            raise PredictionError(f"Missing features required by the model: {missing}")
        X = X[self.feature_names_]

        try:
            preds = self._predict(X)
        except Exception as e:
            self.logger.error(f"Prediction failed for {self.kind}: {e}")
            raise PredictionError(f"Prediction failed for {self.kind}: {e}") from e

        return pd.Series(np.asarray(preds, dtype=float).ravel(), index=frame.index, name="prediction")

    def validate(self, dataset: Dataset) -> Dict[str, Any]:
        """Goodness-of-fit metrics of this model on ``dataset``."""
        preds = self.predict(dataset)
        n_features = len([c for c in self.feature_names_ if c != constants.CONSTANT_COLUMN])
        return compute_regression_metrics(dataset.target(), preds, n_features)

    def close(self) -> None:
        """Release in-memory state; persisted state is kept."""
        self.model_ = None

    def delete(self) -> None:
        """Release in-memory and persisted state."""
        self.close()
        self.feature_names_ = None
        self.storage.delete_namespace(self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _design_matrix(self, frame: pd.DataFrame) -> pd.DataFrame:
        X = frame.drop(columns=[self.target_column_], errors='ignore') if self.target_column_ else frame
        if self.uses_constant_column and constants.CONSTANT_COLUMN not in X.columns:
            X = X.copy()
            X.insert(0, constants.CONSTANT_COLUMN, 1.0)
        return X

    def _save(self, duration: float) -> None:
        self.storage.save_object(self.name, constants.MODEL_STATE_FILE, self.model_)
        self.storage.save_json(self.name, constants.MODEL_METADATA_FILE, {
            'kind': self.kind,
            'params': self.training_parameters,
            'features': self.feature_names_,
            'target': self.target_column_,
            'training_time_sec': duration,
            'timestamp': time.strftime("%Y-%m-%d %H:%M:%S"),
        })

    def _ensure_loaded(self) -> None:
        if self.model_ is not None:
            return
        if not self.storage.exists(self.name, constants.MODEL_STATE_FILE):
            raise ModelStateError(f"{self.kind} '{self.name}' has not been fitted.")

        metadata = self.storage.load_json(self.name, constants.MODEL_METADATA_FILE)
        self.model_ = self.storage.load_object(self.name, constants.MODEL_STATE_FILE)
        self.feature_names_ = metadata['features']
        self.target_column_ = metadata.get('target')
        self.logger.debug(f"Restored {self.kind} '{self.name}' from storage.")


class SignificanceReportingRegressor(BaseRegressor):
    """
    Capability contract for regressors usable as a stepwise base model.

    After training, ``feature_significance`` maps every trained column
    (including the constant column when modelled) to its p-value.
    """

    @abc.abstractmethod
    def feature_significance(self) -> Dict[str, float]:
        raise NotImplementedError("Subclasses must implement feature_significance.")
