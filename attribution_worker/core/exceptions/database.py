"""
Database-related exceptions
"""

from typing import Optional, Dict, Any
from .base import AttributionWorkerException


class DatabaseError(AttributionWorkerException):
    """Base exception for database errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "DATABASE_ERROR",
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, error_code, details, cause)


class DatabaseConnectionError(DatabaseError):
    """Raised when the database cannot be reached"""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message, "DATABASE_CONNECTION_ERROR", cause=cause)

