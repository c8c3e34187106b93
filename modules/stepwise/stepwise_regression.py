import itertools
import logging
import pandas as pd
from typing import Any, Dict, List, Optional, Union

from modules.base.base_regressor import BaseRegressor
from modules.dataset import Dataset
from modules.model_factory import ModelFactory
from modules.storage import ModelStorage
from modules.stepwise.delegate_manager import DelegateLifecycleManager, delegate_namespace
from modules.stepwise.stopping_criteria import StoppingCriteria
from modules.stepwise.training_parameters import StepwiseTrainingParameters
from utils.exceptions import DataValidationError, ModelStateError, ModelTrainingError
from utils.error_handling import handle_engine_errors
from utils.file_io import save_dataframe
from utils import constants


class StepwiseRegression:
    """
    Backward-elimination stepwise regression over a pluggable base regressor.

    Each iteration trains a delegate on the working copy of the data, drops the
    feature with the highest p-value if it exceeds ``a_out``, and repeats. The
    model keeps one delegate (the Active Delegate) trained on the surviving
    columns; predictions are forwarded to it.

    When the loop stops because every remaining feature is significant (or no
    candidate is left), the delegate of that iteration was trained on exactly
    the final column set and is kept as the Active Delegate without retraining.
    Any other exit trains one more delegate on the final columns.
    """

    def __init__(self, name: str, config: Dict[str, Any],
                 training_parameters: Optional[StepwiseTrainingParameters] = None,
                 logger: Optional[logging.Logger] = None):
        self.name = name
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.training_parameters = training_parameters or StepwiseTrainingParameters.from_config(config)
        self.storage = ModelStorage(config, self.logger)

        # State Tracking
        self._delegate: Optional[BaseRegressor] = None
        self.selected_features_: Optional[List[str]] = None
        self.stop_reason_: Optional[str] = None
        self.n_trainings_ = 0
        self.elimination_history: List[Dict[str, Any]] = []

    @classmethod
    def load(cls, name: str, config: Dict[str, Any],
             logger: Optional[logging.Logger] = None) -> "StepwiseRegression":
        """
        Restores a previously fitted model from storage.
        The delegate itself is resolved lazily on first use.
        """
        storage = ModelStorage(config, logger)
        payload = storage.load_json(name, constants.STEPWISE_PARAMETERS_FILE)

        model = cls(name, config, StepwiseTrainingParameters.from_dict(payload['parameters']), logger)
        model.selected_features_ = payload.get('selected_features')
        model.stop_reason_ = payload.get('stop_reason')
        model.n_trainings_ = payload.get('n_trainings', 0)
        model.elimination_history = payload.get('history', [])
        return model

    # ------------------------------------------------------------------
    # Configuration surface
    # ------------------------------------------------------------------

    @property
    def max_iterations(self) -> Optional[int]:
        return self.training_parameters.max_iterations

    @max_iterations.setter
    def max_iterations(self, value: Optional[int]) -> None:
        self.training_parameters.max_iterations = value

    @property
    def a_out(self) -> float:
        return self.training_parameters.a_out

    @a_out.setter
    def a_out(self, value: float) -> None:
        self.training_parameters.a_out = value

    @property
    def significance_exit_threshold(self) -> float:
        return self.training_parameters.significance_exit_threshold

    @significance_exit_threshold.setter
    def significance_exit_threshold(self, value: float) -> None:
        self.training_parameters.significance_exit_threshold = value

    @property
    def base_model_kind(self) -> str:
        return self.training_parameters.base_model_kind

    @base_model_kind.setter
    def base_model_kind(self, kind: str) -> None:
        self.training_parameters.base_model_kind = kind

    @property
    def base_model_training_config(self) -> Dict[str, Any]:
        return self.training_parameters.base_model_training_config

    @base_model_training_config.setter
    def base_model_training_config(self, value: Optional[Dict[str, Any]]) -> None:
        self.training_parameters.base_model_training_config = value

    @property
    def active_delegate(self) -> Optional[BaseRegressor]:
        return self._delegate

    @property
    def is_fitted(self) -> bool:
        return self._delegate is not None or self.storage.exists(
            delegate_namespace(self.name), constants.MODEL_STATE_FILE
        )

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    @handle_engine_errors("Stepwise training", wrap_as=ModelTrainingError)
    def fit(self, training_data: Dataset) -> "StepwiseRegression":
        """
        Runs backward elimination on a copy of ``training_data``.

        The caller's dataset is never modified. Intermediate delegates and the
        working copy are released on every exit path, including errors.
        """
        if training_data is None:
            raise DataValidationError("Cannot fit on a missing dataset.")

        params = self.training_parameters
        self._reset()

        criteria = StoppingCriteria(params.a_out, self.logger)
        manager = DelegateLifecycleManager(self.name, self.config, params, self.logger)
        working = training_data.copy()

        self.logger.info(
            f"Starting stepwise regression '{self.name}' with {working.feature_column_count()} features "
            f"(base model: {params.base_model_kind}, a_out: {params.a_out}, "
            f"max_iterations: {params.max_iterations})"
        )

        try:
            retained = None
            stop_reason = f"Maximum iterations reached ({params.max_iterations})"

            if params.max_iterations is None:
                iterations = itertools.count()
            else:
                iterations = range(params.max_iterations)

            exhausted, reason = criteria.features_exhausted(working.feature_column_count())
            if exhausted:
                stop_reason = reason
                iterations = range(0)

            for iteration in iterations:
                n_features = working.feature_column_count()
                pvalues = manager.train_and_score(working)
                decision = criteria.evaluate(pvalues, working.feature_columns)
                self._record(iteration, n_features, decision)

                if decision.stop:
                    stop_reason = decision.reason
                    # Trained on the final column set already
                    retained = manager.release()
                    break

                working.drop_columns({decision.candidate})
                manager.discard()
                self.logger.info(
                    f"Iteration {iteration}: removed '{decision.candidate}' "
                    f"(p-value {decision.p_value:.4g} > {params.a_out:.4g}), "
                    f"{working.feature_column_count()} features left"
                )

                exhausted, reason = criteria.features_exhausted(working.feature_column_count())
                if exhausted:
                    stop_reason = reason
                    break

            if retained is None:
                self.logger.debug(f"Training final delegate on {working.feature_column_count()} features")
                retained = manager.train_final(working)

            self._delegate = retained
            self.selected_features_ = working.feature_columns
            self.stop_reason_ = stop_reason
            self.n_trainings_ = manager.trainings
        finally:
            manager.discard()
            working.dispose()

        self.logger.info(
            f"Stepwise regression stopped: {self.stop_reason_}. "
            f"Selected {len(self.selected_features_)} features after {self.n_trainings_} trainings: "
            f"{self.selected_features_}"
        )
        self._save()
        return self

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def predict(self, new_data: Union[Dataset, pd.DataFrame]) -> pd.Series:
        """Forwards prediction to the Active Delegate, restoring it from storage if needed."""
        if self._delegate is None:
            self._delegate = self._resolve_persisted_delegate()
        return self._delegate.predict(new_data)

    def validate(self, dataset: Dataset) -> Dict[str, Any]:
        """Goodness-of-fit metrics of the Active Delegate on ``dataset``."""
        if self._delegate is None:
            self._delegate = self._resolve_persisted_delegate()
        return self._delegate.validate(dataset)

    def feature_significance(self) -> Dict[str, float]:
        """p-values of the Active Delegate on the selected features."""
        if self._delegate is None:
            self._delegate = self._resolve_persisted_delegate()
        return self._delegate.feature_significance()

    def history_frame(self) -> pd.DataFrame:
        columns = ['iteration', 'n_features', 'candidate', 'p_value', 'decision', 'reason']
        return pd.DataFrame(self.elimination_history, columns=columns)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the in-memory delegate; persisted state is kept."""
        if self._delegate is not None:
            self._delegate.close()
            self._delegate = None

    def delete(self) -> None:
        """Delete the Active Delegate, then this model's persisted state. Idempotent."""
        if self._delegate is not None:
            self._delegate.delete()
            self._delegate = None
        self.storage.delete_namespace(self.name)

    dispose = delete

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self.delete()
        self.selected_features_ = None
        self.stop_reason_ = None
        self.n_trainings_ = 0
        self.elimination_history = []

    def _record(self, iteration: int, n_features: int, decision) -> None:
        action = constants.DECISION_STOP if decision.stop else constants.DECISION_REMOVE
        self.elimination_history.append({
            'iteration': iteration,
            'n_features': n_features,
            'candidate': decision.candidate,
            'p_value': decision.p_value,
            'decision': action,
            'reason': decision.reason,
        })
        self.logger.debug(
            f"Iteration {iteration}: {n_features} features, worst '{decision.candidate}' "
            f"p-value {decision.p_value}, decision {action}"
        )

    def _resolve_persisted_delegate(self) -> BaseRegressor:
        namespace = delegate_namespace(self.name)
        if not self.storage.exists(namespace, constants.MODEL_STATE_FILE):
            raise ModelStateError(f"Stepwise model '{self.name}' has not been fitted.")
        params = self.training_parameters
        return ModelFactory.create(
            params.base_model_kind,
            namespace,
            self.config,
            params.base_model_training_config,
            self.logger,
        )

    def _save(self) -> None:
        self.storage.save_json(self.name, constants.STEPWISE_PARAMETERS_FILE, {
            'parameters': self.training_parameters.to_dict(),
            'selected_features': self.selected_features_,
            'stop_reason': self.stop_reason_,
            'n_trainings': self.n_trainings_,
            'history': self.elimination_history,
        })

        outputs = self.config.get('outputs', {})
        if outputs.get('save_history', False) and self.elimination_history:
            path = self.storage.namespace_dir(self.name) / constants.ELIMINATION_HISTORY_FILE
            save_dataframe(self.history_frame(), path,
                           excel_copy=outputs.get('save_excel_copy', False), index=False)
