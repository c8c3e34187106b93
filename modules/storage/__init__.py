"""
Storage Module
==============

Responsibility:
- Directory-backed namespaces for persisted model state.
- joblib serialization of fitted estimators, JSON for metadata.
- Full removal of a namespace when a model is deleted.
"""

from .model_storage import ModelStorage

__all__ = ['ModelStorage']
