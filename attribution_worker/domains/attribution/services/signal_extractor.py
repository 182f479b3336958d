"""
Signal extraction and comparison helpers
"""

import math
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from attribution_worker.shared.helpers import minutes_between
from ..models import ClickEvent, ConfidenceFactors, MatchingSignals, SaleEvent

TRACKER_METADATA_KEYS = ("tracker_id", "rckr_id", "trackerId")
FINGERPRINT_METADATA_KEYS = ("fingerprint", "fp")
IP_METADATA_KEYS = ("customer_ip", "ip")

_PLATFORM_HINTS = (
    ("twitter", "twitter"),
    ("x_", "twitter"),
    ("youtube", "youtube"),
    ("instagram", "instagram"),
    ("tiktok", "tiktok"),
    ("twitch", "twitch"),
)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first(metadata: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = _clean(metadata.get(key))
        if value:
            return value
    return None


def extract_matching_signals(sale: SaleEvent) -> MatchingSignals:
    """
    Collect matching signals from a sale.

    Explicit processor metadata wins over the webhook's extracted fields,
    which in turn win over the nested ``_extracted`` blob.
    """
    metadata = sale.metadata or {}
    extracted = metadata.get("_extracted")
    if not isinstance(extracted, dict):
        extracted = {}

    ip = (
        _clean(sale.customer_ip)
        or _first(metadata, IP_METADATA_KEYS)
        or _first(extracted, ("ip", "customerIp"))
    )
    tracker_id = (
        _first(metadata, TRACKER_METADATA_KEYS)
        or _clean(sale.tracker_id)
        or _first(extracted, ("trackerId", "tracker_id"))
    )
    fingerprint = (
        _first(metadata, FINGERPRINT_METADATA_KEYS)
        or _clean(sale.fingerprint)
        or _first(extracted, ("fingerprint", "fp"))
    )

    return MatchingSignals(
        ip=ip,
        tracker_id=tracker_id,
        fingerprint=fingerprint,
        country=_clean(sale.country),
        region=_clean(sale.region),
        city=_clean(sale.city),
    )


def same_place(left: Optional[str], right: Optional[str]) -> bool:
    """Case-insensitive equality of two present geo values"""
    if not left or not right:
        return False
    return left.strip().casefold() == right.strip().casefold()


def _same_value(left: Optional[str], right: Optional[str]) -> bool:
    return bool(left) and bool(right) and left == right


def build_confidence_factors(
    click: ClickEvent, signals: MatchingSignals, sale_time: datetime
) -> ConfidenceFactors:
    """Compare a click against a sale's signals"""
    return ConfidenceFactors(
        ip_match=_same_value(click.ip_address, signals.ip),
        tracker_match=_same_value(click.tracker_id, signals.tracker_id),
        fingerprint_match=_same_value(click.fingerprint, signals.fingerprint),
        geo_match=same_place(click.country, signals.country)
        and same_place(click.city, signals.city),
        time_window_minutes=max(0.0, minutes_between(click.clicked_at, sale_time)),
    )


def time_delta_minutes(earlier: datetime, later: datetime) -> int:
    """Whole minutes elapsed, floored"""
    return int(math.floor(max(0.0, minutes_between(earlier, later))))


def calculate_click_geo_score(click: ClickEvent, signals: MatchingSignals) -> float:
    """Country +0.5, then city +0.5 or region +0.3"""
    score = 0.0
    if same_place(click.country, signals.country):
        score += 0.5
        if same_place(click.city, signals.city):
            score += 0.5
        elif same_place(click.region, signals.region):
            score += 0.3
    return min(1.0, score)


def infer_platform(social_account_id: Optional[str]) -> str:
    """Guess a platform from a social account id"""
    if not social_account_id:
        return "default"
    lowered = social_account_id.lower()
    for hint, platform in _PLATFORM_HINTS:
        if hint in lowered:
            return platform
    return "default"
