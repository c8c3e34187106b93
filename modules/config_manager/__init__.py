"""
Configuration Manager Module
============================

Responsibility:
- Centralized loading and validation of JSON configuration files.
- Enforcement of schema constraints and logical business rules.
- Rejection of base models that cannot report feature p-values.
"""

from .config_manager import ConfigurationManager

__all__ = ['ConfigurationManager']
