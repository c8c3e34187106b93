"""
Custom exception hierarchy for the Stepwise Regression System.
"""

class StepwiseMLException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(StepwiseMLException):
    """Configuration validation failed."""
    pass

class DataValidationError(StepwiseMLException):
    """Data validation failed."""
    pass

class ModelTrainingError(StepwiseMLException):
    """Model training failed."""
    pass

class PredictionError(StepwiseMLException):
    """Prediction generation failed."""
    pass

class ModelStateError(StepwiseMLException):
    """Model used before it was fitted or after it was released."""
    pass

class StorageError(StepwiseMLException):
    """Persisted model state could not be read or written."""
    pass
