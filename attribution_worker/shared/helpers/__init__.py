from .datetime_utils import now_utc, parse_iso_timestamp, minutes_between, ensure_utc

__all__ = ["now_utc", "parse_iso_timestamp", "minutes_between", "ensure_utc"]
