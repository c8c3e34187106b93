import pytest
import numpy as np
import pandas as pd
from unittest.mock import MagicMock, patch

from modules.base.base_regressor import SignificanceReportingRegressor
from modules.dataset import Dataset
from modules.model_factory import ModelFactory
from modules.stepwise import StepwiseRegression, StepwiseTrainingParameters
from utils.exceptions import ConfigurationError, ModelStateError, ModelTrainingError
from utils import constants


class ScriptedRegressor(SignificanceReportingRegressor):
    """
    Reports p-values looked up by the trained feature set.
    Unscripted feature sets report 0.0 for every feature.
    """

    uses_constant_column = True

    script = {}
    fail_on = set()
    include_constant = True
    fits = 0
    deleted = 0

    @classmethod
    def reset(cls):
        cls.script = {}
        cls.fail_on = set()
        cls.include_constant = True
        cls.fits = 0
        cls.deleted = 0

    def _fit(self, X, y):
        type(self).fits += 1
        features = frozenset(c for c in X.columns if c != constants.CONSTANT_COLUMN)
        if features in self.fail_on:
            raise RuntimeError("singular matrix")

        pvalues = dict(self.script.get(features, {c: 0.0 for c in features}))
        if self.include_constant:
            # Deliberately the worst score; must never be eliminated
            pvalues[constants.CONSTANT_COLUMN] = 0.99
        return {'pvalues': pvalues, 'mean': float(y.mean())}

    def _predict(self, X):
        return np.full(len(X), self.model_['mean'])

    def feature_significance(self):
        self._ensure_loaded()
        return dict(self.model_['pvalues'])

    def delete(self):
        type(self).deleted += 1
        super().delete()


# --- Fixtures ---

@pytest.fixture(autouse=True)
def scripted_model():
    ScriptedRegressor.reset()
    ModelFactory.register('ScriptedRegressor', ScriptedRegressor)
    yield ScriptedRegressor
    ModelFactory.unregister('ScriptedRegressor')

@pytest.fixture
def mock_logger():
    return MagicMock()

@pytest.fixture
def config(tmp_path):
    return {
        'storage': {'base_dir': str(tmp_path / "models")},
        'outputs': {'save_history': False},
    }

@pytest.fixture
def dataset():
    n = 12
    df = pd.DataFrame({
        'A': np.arange(n, dtype=float),
        'B': np.arange(n, dtype=float) ** 2,
        'C': np.sin(np.arange(n)),
        'y': np.linspace(0, 1, n),
    })
    return Dataset(df, target_column='y')

def make_model(config, mock_logger, **kwargs):
    params = StepwiseTrainingParameters(base_model_kind='ScriptedRegressor', **kwargs)
    return StepwiseRegression("stepwise_test", config, params, mock_logger)

# --- Tests ---

class TestBackwardElimination:

    def test_removes_worst_feature_then_stops(self, config, mock_logger, dataset, scripted_model):
        """B is removed in round 1; A and C are significant in round 2."""
        scripted_model.script = {
            frozenset('ABC'): {'A': 0.01, 'B': 0.20, 'C': 0.03},
            frozenset('AC'): {'A': 0.01, 'C': 0.02},
        }
        model = make_model(config, mock_logger, a_out=0.05)
        model.fit(dataset)

        assert model.selected_features_ == ['A', 'C']
        assert model.active_delegate.feature_names_ == ['const', 'A', 'C']
        history = model.history_frame()
        assert list(history['candidate']) == ['B', 'C']
        assert list(history['decision']) == [constants.DECISION_REMOVE, constants.DECISION_STOP]
        assert "All features significant" in model.stop_reason_

    def test_converged_delegate_is_retained_without_retraining(self, config, mock_logger, dataset, scripted_model):
        """All features significant on the first round -> a single training."""
        scripted_model.script = {frozenset('ABC'): {'A': 0.01, 'B': 0.02, 'C': 0.05}}
        model = make_model(config, mock_logger)
        model.fit(dataset)

        assert scripted_model.fits == 1
        assert model.n_trainings_ == 1
        assert model.selected_features_ == ['A', 'B', 'C']

    def test_max_iterations_zero_trains_on_original_features(self, config, mock_logger, dataset, scripted_model):
        scripted_model.script = {frozenset('ABC'): {'A': 0.9, 'B': 0.9, 'C': 0.9}}
        model = make_model(config, mock_logger, max_iterations=0)
        model.fit(dataset)

        assert scripted_model.fits == 1
        assert model.elimination_history == []
        assert model.selected_features_ == ['A', 'B', 'C']
        assert "Maximum iterations" in model.stop_reason_

    @pytest.mark.parametrize("max_iterations", [1, 2])
    def test_trainings_bounded_by_max_iterations(self, config, mock_logger, dataset, scripted_model, max_iterations):
        all_bad = {'A': 0.5, 'B': 0.5, 'C': 0.5}
        scripted_model.script = {
            frozenset('ABC'): all_bad,
            frozenset('BC'): {'B': 0.5, 'C': 0.5},
        }
        model = make_model(config, mock_logger, max_iterations=max_iterations)
        model.fit(dataset)

        assert scripted_model.fits == max_iterations + 1
        assert model.n_trainings_ <= max_iterations + 1
        assert len(model.selected_features_) == 3 - max_iterations

    def test_unbounded_loop_removes_every_feature(self, config, mock_logger, dataset, scripted_model):
        """Ties resolve to the first column; the loop ends when no features are left."""
        scripted_model.script = {
            frozenset('ABC'): {'A': 0.5, 'B': 0.5, 'C': 0.5},
            frozenset('BC'): {'B': 0.5, 'C': 0.5},
            frozenset('C'): {'C': 0.5},
        }
        model = make_model(config, mock_logger)
        model.fit(dataset)

        assert [h['candidate'] for h in model.elimination_history] == ['A', 'B', 'C']
        assert [h['n_features'] for h in model.elimination_history] == [3, 2, 1]
        assert model.selected_features_ == []
        assert model.stop_reason_ == "No feature columns left"
        # Three elimination rounds plus the final intercept-only fit
        assert scripted_model.fits == 4
        assert model.active_delegate.feature_names_ == ['const']

    def test_tie_break_follows_column_order(self, config, mock_logger, scripted_model):
        df = pd.DataFrame({'C': [1.0, 2.0, 3.0], 'A': [3.0, 1.0, 2.0], 'B': [0.0, 1.0, 0.0], 'y': [1.0, 2.0, 3.0]})
        scripted_model.script = {
            frozenset('ABC'): {'A': 0.4, 'B': 0.4, 'C': 0.4},
            frozenset('AB'): {'A': 0.01, 'B': 0.01},
        }
        model = make_model(config, mock_logger)
        model.fit(Dataset(df, target_column='y'))

        assert model.elimination_history[0]['candidate'] == 'C'
        assert model.selected_features_ == ['A', 'B']

    def test_constant_column_is_never_removed(self, config, mock_logger, dataset, scripted_model):
        scripted_model.script = {frozenset('ABC'): {'A': 0.3, 'B': 0.01, 'C': 0.01}}
        model = make_model(config, mock_logger)
        model.fit(dataset)

        candidates = [h['candidate'] for h in model.elimination_history]
        assert constants.CONSTANT_COLUMN not in candidates
        assert candidates[0] == 'A'

    def test_empty_significance_map_stops(self, config, mock_logger, dataset, scripted_model):
        scripted_model.include_constant = False
        scripted_model.script = {frozenset('ABC'): {}}
        model = make_model(config, mock_logger)
        model.fit(dataset)

        assert scripted_model.fits == 1
        assert model.stop_reason_ == "No p-values reported"
        assert model.selected_features_ == ['A', 'B', 'C']

    def test_dataset_without_features_stops_immediately(self, config, mock_logger, scripted_model):
        empty = Dataset(pd.DataFrame({'y': [1.0, 2.0, 3.0]}), target_column='y')
        model = make_model(config, mock_logger)
        model.fit(empty)

        assert model.elimination_history == []
        assert model.stop_reason_ == "No feature columns left"
        assert scripted_model.fits == 1

    def test_caller_dataset_is_not_modified(self, config, mock_logger, dataset, scripted_model):
        scripted_model.script = {frozenset('ABC'): {'A': 0.01, 'B': 0.9, 'C': 0.01}}
        model = make_model(config, mock_logger)
        model.fit(dataset)

        assert not dataset.is_disposed
        assert dataset.feature_columns == ['A', 'B', 'C']
        assert model.selected_features_ == ['A', 'C']


class TestResourceManagement:

    def test_intermediate_delegates_are_deleted(self, config, mock_logger, dataset, scripted_model):
        scripted_model.script = {
            frozenset('ABC'): {'A': 0.01, 'B': 0.9, 'C': 0.8},
            frozenset('AC'): {'A': 0.01, 'C': 0.8},
        }
        model = make_model(config, mock_logger)
        model.fit(dataset)

        # Two removal rounds discard their delegates; the third round's delegate is kept
        assert scripted_model.fits == 3
        assert scripted_model.deleted == 2
        assert model.active_delegate.is_fitted

    def test_training_failure_releases_resources(self, config, mock_logger, dataset, scripted_model):
        scripted_model.script = {frozenset('ABC'): {'A': 0.01, 'B': 0.9, 'C': 0.01}}
        scripted_model.fail_on = {frozenset('AC')}
        working = dataset.copy()
        model = make_model(config, mock_logger)

        with patch.object(dataset, 'copy', return_value=working):
            with pytest.raises(ModelTrainingError) as excinfo:
                model.fit(dataset)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert working.is_disposed
        assert scripted_model.deleted == scripted_model.fits == 2
        assert model.active_delegate is None
        assert not model.storage.exists("stepwise_test/delegate")

    def test_final_training_failure_propagates(self, config, mock_logger, dataset, scripted_model):
        scripted_model.fail_on = {frozenset('ABC')}
        model = make_model(config, mock_logger, max_iterations=0)

        with pytest.raises(ModelTrainingError, match="singular matrix"):
            model.fit(dataset)
        assert scripted_model.deleted == 1

    def test_delete_disposes_exactly_one_delegate(self, config, mock_logger, dataset, scripted_model):
        scripted_model.script = {frozenset('ABC'): {'A': 0.01, 'B': 0.9, 'C': 0.01}}
        model = make_model(config, mock_logger)
        model.fit(dataset)
        scripted_model.deleted = 0

        model.delete()
        assert scripted_model.deleted == 1
        assert model.active_delegate is None
        assert not model.storage.exists("stepwise_test")

        model.delete()
        assert scripted_model.deleted == 1

    def test_refit_replaces_active_delegate(self, config, mock_logger, dataset, scripted_model):
        model = make_model(config, mock_logger)
        model.fit(dataset)
        first = model.active_delegate

        model.fit(dataset)
        assert model.active_delegate is not first
        assert not first.is_fitted


class TestPredictionAndPersistence:

    def test_predict_before_fit_raises(self, config, mock_logger, dataset):
        model = make_model(config, mock_logger)
        with pytest.raises(ModelStateError):
            model.predict(dataset)

    def test_predict_forwards_to_active_delegate(self, config, mock_logger, dataset):
        model = make_model(config, mock_logger)
        model.fit(dataset)

        preds = model.predict(dataset)
        assert len(preds) == len(dataset)
        assert np.allclose(preds, dataset.target().mean())

    def test_load_resolves_delegate_lazily(self, config, mock_logger, dataset, scripted_model):
        scripted_model.script = {
            frozenset('ABC'): {'A': 0.01, 'B': 0.9, 'C': 0.01},
        }
        model = make_model(config, mock_logger)
        model.fit(dataset)
        expected = model.predict(dataset)
        model.close()

        restored = StepwiseRegression.load("stepwise_test", config, mock_logger)
        assert restored.active_delegate is None
        assert restored.selected_features_ == ['A', 'C']
        assert restored.base_model_kind == 'ScriptedRegressor'

        preds = restored.predict(dataset.data.drop(columns=['B']))
        assert restored.active_delegate is not None
        pd.testing.assert_series_equal(preds, expected)

    def test_history_saved_when_enabled(self, config, mock_logger, dataset, scripted_model):
        config['outputs']['save_history'] = True
        scripted_model.script = {frozenset('ABC'): {'A': 0.01, 'B': 0.9, 'C': 0.01}}
        model = make_model(config, mock_logger)
        model.fit(dataset)

        path = model.storage.namespace_dir("stepwise_test") / constants.ELIMINATION_HISTORY_FILE
        assert path.exists()
        saved = pd.read_parquet(path)
        assert list(saved['candidate']) == ['B', 'C']


class TestConfigurationSurface:

    def test_incompatible_base_model_rejected(self, config, mock_logger):
        model = make_model(config, mock_logger)
        with pytest.raises(ConfigurationError, match="does not report feature p-values"):
            model.base_model_kind = 'Ridge'
        assert model.base_model_kind == 'ScriptedRegressor'

    def test_setters_validate(self, config, mock_logger):
        model = make_model(config, mock_logger)
        model.max_iterations = 3
        model.a_out = 0.1
        model.base_model_training_config = {'alpha': 1}

        assert model.training_parameters.max_iterations == 3
        assert model.training_parameters.significance_exit_threshold == 0.1
        assert model.base_model_training_config == {'alpha': 1}

        with pytest.raises(ConfigurationError):
            model.a_out = 0.0

    def test_significance_exit_threshold_aliases_a_out(self, config, mock_logger):
        model = make_model(config, mock_logger)
        model.significance_exit_threshold = 0.2

        assert model.a_out == 0.2
        assert model.significance_exit_threshold == 0.2
        with pytest.raises(ConfigurationError):
            model.significance_exit_threshold = 1.5
        assert model.a_out == 0.2

    def test_parameters_default_from_config(self, tmp_path, mock_logger):
        config = {
            'storage': {'base_dir': str(tmp_path)},
            'stepwise': {'base_model': 'ScriptedRegressor', 'max_iterations': 4, 'a_out': 0.1},
        }
        model = StepwiseRegression("from_config", config, logger=mock_logger)
        assert model.max_iterations == 4
        assert model.a_out == 0.1
