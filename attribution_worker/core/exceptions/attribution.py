"""
Attribution-related exceptions
"""

from typing import Optional
from .base import AttributionWorkerException


class AttributionError(AttributionWorkerException):
    """Base exception for attribution errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "ATTRIBUTION_ERROR",
        details: Optional[dict] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, error_code, details, cause)


class AttributionNotFoundError(AttributionError):
    """Raised when feedback targets an attribution that does not exist"""

    def __init__(self, attribution_id: str):
        super().__init__(
            f"Attribution {attribution_id} not found",
            "ATTRIBUTION_NOT_FOUND",
            {"attribution_id": attribution_id},
        )
        self.attribution_id = attribution_id


class AttributionStateError(AttributionError):
    """Raised when an attribution cannot move to the requested status"""

    def __init__(self, attribution_id: str, current_status: str, requested_status: str):
        super().__init__(
            f"Attribution {attribution_id} is already {current_status}",
            "ATTRIBUTION_INVALID_TRANSITION",
            {
                "attribution_id": attribution_id,
                "current_status": current_status,
                "requested_status": requested_status,
            },
        )


class AttributionPersistenceError(AttributionError):
    """Raised when the durable store fails on a write or a required read"""

    def __init__(
        self,
        sale_id: Optional[str] = None,
        cause: Optional[Exception] = None,
        attribution_id: Optional[str] = None,
    ):
        if attribution_id is not None:
            message = f"Durable store unavailable for attribution {attribution_id}"
            details = {"attribution_id": attribution_id}
        else:
            message = f"Failed to persist attribution for sale {sale_id}"
            details = {"sale_id": sale_id}
        super().__init__(
            message,
            "ATTRIBUTION_PERSISTENCE_ERROR",
            details,
            cause,
        )
        self.sale_id = sale_id
        self.attribution_id = attribution_id


class ContentAttributionNotFoundError(AttributionError):
    """Raised when a manual review targets an unknown content attribution"""

    def __init__(self, content_attribution_id: str):
        super().__init__(
            f"Content attribution {content_attribution_id} not found",
            "CONTENT_ATTRIBUTION_NOT_FOUND",
            {"content_attribution_id": content_attribution_id},
        )
