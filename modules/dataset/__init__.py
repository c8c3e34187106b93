"""
Dataset Module
==============

Responsibility:
- Wraps a pandas DataFrame with a named target and a reserved intercept column.
- Deep copies, in-place column removal and feature counting for elimination loops.
- Explicit disposal of the backing frame.
"""

from .dataset import Dataset

__all__ = ['Dataset']
