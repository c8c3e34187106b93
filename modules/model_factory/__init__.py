"""
Model Factory Module
====================

Responsibility:
- Maps model kind names to regressor classes.
- Records which kinds implement the significance-reporting capability.
"""

from .model_factory import ModelFactory

__all__ = ['ModelFactory']
