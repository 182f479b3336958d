"""
DateTime utility functions for the Attribution Worker
"""

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_timestamp(timestamp_str: str) -> Optional[datetime]:
    """
    Parse ISO timestamp string to timezone-aware datetime object.
    Handles both 'Z' suffix and '+00:00' formats for UTC timestamps.

    Args:
        timestamp_str: ISO timestamp string (e.g., "2024-01-15T10:30:00Z")

    Returns:
        timezone-aware datetime object or None if parsing fails
    """
    try:
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str.replace("Z", "+00:00")
        return ensure_utc(datetime.fromisoformat(timestamp_str))
    except (ValueError, TypeError, AttributeError):
        return None


def minutes_between(earlier: datetime, later: datetime) -> float:
    """Elapsed minutes from earlier to later (negative if reversed)"""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / 60.0
