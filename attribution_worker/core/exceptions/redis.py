"""
Redis-related exceptions
"""

from .base import AttributionWorkerException
from typing import Optional, Dict, Any


class RedisError(AttributionWorkerException):
    """Base exception for Redis errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "REDIS_ERROR",
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, error_code, details, cause)


class RedisConnectionError(RedisError):
    """Raised when Redis connection fails"""

    def __init__(
        self,
        message: str,
        connection_details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            error_code="REDIS_CONNECTION_ERROR",
            details={"connection_details": connection_details},
            cause=cause,
        )


class RedisTimeoutError(RedisError):
    """Raised when Redis operations timeout"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        timeout: Optional[float] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            error_code="REDIS_TIMEOUT_ERROR",
            details={"operation": operation, "timeout": timeout},
            cause=cause,
        )
