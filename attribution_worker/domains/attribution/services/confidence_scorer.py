"""
Confidence scoring for exact matches

Pure functions: the same factors always yield the same score.
"""

from attribution_worker.shared.constants.attribution import (
    DUAL_SIGNAL_BONUS,
    FINGERPRINT_CONFIDENCE,
    GEO_CONFIDENCE,
    IP_CONFIDENCE,
    MATCHED_CONFIDENCE_THRESHOLD,
    MAX_CONFIDENCE_WITH_IP,
    MAX_CONFIDENCE_WITHOUT_IP,
    MULTI_SIGNAL_BONUS,
    RECENT_BONUS,
    RECENT_BONUS_MINUTES,
    SAME_DAY_PART_BONUS,
    SAME_DAY_PART_MINUTES,
    TRACKER_CONFIDENCE,
)
from ..models import AttributionStatus, ConfidenceFactors, MatchType


def calculate_confidence(factors: ConfidenceFactors) -> float:
    """Additive signal score with recency and multi-signal bonuses, capped"""
    score = 0.0
    if factors.ip_match:
        score += IP_CONFIDENCE
    if factors.tracker_match:
        score += TRACKER_CONFIDENCE
    if factors.fingerprint_match:
        score += FINGERPRINT_CONFIDENCE
    if factors.geo_match:
        score += GEO_CONFIDENCE

    if factors.time_window_minutes <= RECENT_BONUS_MINUTES:
        score += RECENT_BONUS
    elif factors.time_window_minutes <= SAME_DAY_PART_MINUTES:
        score += SAME_DAY_PART_BONUS

    signal_count = len(factors.matched_signals)
    if signal_count >= 3:
        score += MULTI_SIGNAL_BONUS
    elif signal_count == 2:
        score += DUAL_SIGNAL_BONUS

    cap = MAX_CONFIDENCE_WITH_IP if factors.ip_match else MAX_CONFIDENCE_WITHOUT_IP
    return round(max(0.0, min(cap, score)), 4)


def determine_match_type(factors: ConfidenceFactors) -> MatchType:
    """Strongest matched signal: ip > tracker > fingerprint > geo"""
    if factors.ip_match:
        return MatchType.IP
    if factors.tracker_match:
        return MatchType.TRACKER
    if factors.fingerprint_match:
        return MatchType.FINGERPRINT
    if factors.geo_match:
        return MatchType.GEO
    return MatchType.NONE


def status_for_confidence(confidence: float) -> AttributionStatus:
    """MATCHED at or above 0.80, otherwise held for review"""
    if confidence >= MATCHED_CONFIDENCE_THRESHOLD:
        return AttributionStatus.MATCHED
    return AttributionStatus.UNCERTAIN
