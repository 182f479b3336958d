"""
Configuration-related exceptions
"""

from .base import AttributionWorkerException
from typing import Optional


class ConfigurationError(AttributionWorkerException):
    """Raised when there's a configuration error"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None,
    ):
        config_details = {"config_key": config_key}
        if details:
            config_details.update(details)
        super().__init__(message, "CONFIG_ERROR", config_details, cause)


class ConfigurationValidationError(ConfigurationError):
    """Raised when configuration validation fails"""

    def __init__(
        self,
        message: str,
        validation_errors: list,
        config_key: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            config_key=config_key,
            details={"validation_errors": validation_errors},
            cause=cause,
        )
        self.error_code = "CONFIG_VALIDATION_ERROR"
        self.validation_errors = validation_errors
