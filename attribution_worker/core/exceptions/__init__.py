"""
Custom exceptions for the Attribution Worker
"""

from .base import AttributionWorkerException
from .config import ConfigurationError, ConfigurationValidationError
from .database import DatabaseError, DatabaseConnectionError
from .redis import RedisError, RedisConnectionError, RedisTimeoutError
from .attribution import (
    AttributionError,
    AttributionNotFoundError,
    AttributionStateError,
    AttributionPersistenceError,
    ContentAttributionNotFoundError,
)

__all__ = [
    "AttributionWorkerException",
    "ConfigurationError",
    "ConfigurationValidationError",
    "DatabaseError",
    "DatabaseConnectionError",
    "RedisError",
    "RedisConnectionError",
    "RedisTimeoutError",
    "AttributionError",
    "AttributionNotFoundError",
    "AttributionStateError",
    "AttributionPersistenceError",
    "ContentAttributionNotFoundError",
]
