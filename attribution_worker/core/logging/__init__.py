"""
Logging module for the Attribution Worker
"""

from .logger import (
    get_logger,
    setup_logging,
    logging_config_from_settings,
    StructuredLogger,
)
from .formatters import StructuredFormatter, JSONFormatter, ConsoleFormatter
from .handlers import FileHandler, ConsoleHandler
from .config import LoggingConfig

__all__ = [
    "get_logger",
    "setup_logging",
    "logging_config_from_settings",
    "StructuredLogger",
    "StructuredFormatter",
    "JSONFormatter",
    "ConsoleFormatter",
    "FileHandler",
    "ConsoleHandler",
    "LoggingConfig",
]
