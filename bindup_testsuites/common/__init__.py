"""
================================================================================
Common Utilities
================================================================================

Shared configuration and logging setup for the BiNDup test suites.

Exports:
    - ConfigLoader: Singleton YAML + environment configuration
    - ConfigurationError: Raised on unreadable configuration
    - init_logger: Initialize loguru with the project settings

Usage:
    from bindup_testsuites.common import ConfigLoader, init_logger

    init_logger()
    base_url = ConfigLoader().get("bindup.base_url")

================================================================================
"""

from .config_loader import ConfigLoader, ConfigurationError
from .logger_setup import init_logger, reset_logger

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "init_logger",
    "reset_logger",
]
