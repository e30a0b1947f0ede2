"""Utilities for graphsql setup and configuration.

Includes:
- Configuration loading with env var substitution
- Structured logging
"""

from .config_loader import load_yaml_with_env
from .logging import StructuredLogger, configure_logging, logger

__all__ = [
    "load_yaml_with_env",
    "StructuredLogger",
    "configure_logging",
    "logger",
]
