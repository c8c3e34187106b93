"""
Logging Configuration Module
============================

Responsibility:
- Root logger setup with colored console output and rotating UTF-8 log files.
"""

from .logging_config import LoggingConfigurator, ColoredFormatter

__all__ = ['LoggingConfigurator', 'ColoredFormatter']
