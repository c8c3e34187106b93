"""
Stepwise Regression Module.

This package contains the backward elimination pipeline, including:
- StepwiseRegression: Orchestrates the elimination loop and owns the Active Delegate.
- DelegateLifecycleManager: Creates, trains, scores and disposes delegates.
- StoppingCriteria: Evaluates when to halt the loop and which feature to drop.
- StepwiseTrainingParameters: Validated training parameters.
"""

from .training_parameters import StepwiseTrainingParameters
from .stopping_criteria import StoppingCriteria, EliminationDecision
from .delegate_manager import DelegateLifecycleManager
from .stepwise_regression import StepwiseRegression

__all__ = [
    'StepwiseRegression',
    'DelegateLifecycleManager',
    'StoppingCriteria',
    'EliminationDecision',
    'StepwiseTrainingParameters'
]
