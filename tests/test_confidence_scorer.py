"""
Tests for exact-match confidence scoring and signal extraction
"""

from datetime import timedelta

import pytest

from attribution_worker.domains.attribution.models import (
    AttributionStatus,
    ConfidenceFactors,
    MatchingSignals,
    MatchType,
)
from attribution_worker.domains.attribution.services import (
    build_confidence_factors,
    calculate_click_geo_score,
    calculate_confidence,
    determine_match_type,
    extract_matching_signals,
    infer_platform,
    status_for_confidence,
)
from tests.conftest import FIXED_NOW, make_click, make_sale


class TestCalculateConfidence:
    def test_ip_only_recent_click(self):
        factors = ConfidenceFactors(ip_match=True, time_window_minutes=10)
        assert calculate_confidence(factors) == pytest.approx(0.60)

    def test_all_signals_capped_at_one(self):
        factors = ConfidenceFactors(
            ip_match=True,
            tracker_match=True,
            fingerprint_match=True,
            geo_match=True,
            time_window_minutes=5,
        )
        assert calculate_confidence(factors) == 1.0

    def test_without_ip_capped_below_one(self):
        factors = ConfidenceFactors(
            tracker_match=True,
            fingerprint_match=True,
            geo_match=True,
            time_window_minutes=5,
        )
        assert calculate_confidence(factors) == pytest.approx(0.95)

    @pytest.mark.parametrize(
        "minutes, expected",
        [(60, 0.60), (61, 0.55), (240, 0.55), (241, 0.50)],
    )
    def test_recency_bands(self, minutes, expected):
        factors = ConfidenceFactors(ip_match=True, time_window_minutes=minutes)
        assert calculate_confidence(factors) == pytest.approx(expected)

    def test_dual_signal_bonus(self):
        factors = ConfidenceFactors(ip_match=True, geo_match=True, time_window_minutes=300)
        assert calculate_confidence(factors) == pytest.approx(0.70)

    def test_is_deterministic(self):
        factors = ConfidenceFactors(tracker_match=True, time_window_minutes=90)
        assert calculate_confidence(factors) == calculate_confidence(factors)


class TestMatchTypeAndStatus:
    def test_strongest_signal_wins(self):
        assert determine_match_type(
            ConfidenceFactors(tracker_match=True, geo_match=True)
        ) == MatchType.TRACKER
        assert determine_match_type(ConfidenceFactors(geo_match=True)) == MatchType.GEO
        assert determine_match_type(ConfidenceFactors()) == MatchType.NONE

    def test_status_threshold(self):
        assert status_for_confidence(0.80) == AttributionStatus.MATCHED
        assert status_for_confidence(0.7999) == AttributionStatus.UNCERTAIN
        assert status_for_confidence(0.20) == AttributionStatus.UNCERTAIN


class TestSignalExtraction:
    def test_metadata_tracker_wins_over_extracted_field(self):
        sale = make_sale(tracker_id="from_field", metadata={"rckr_id": "from_meta"})
        assert extract_matching_signals(sale).tracker_id == "from_meta"

    def test_falls_back_to_nested_extracted_blob(self):
        sale = make_sale(metadata={"_extracted": {"ip": "5.6.7.8", "fp": "fp_9"}})
        signals = extract_matching_signals(sale)

        assert signals.ip == "5.6.7.8"
        assert signals.fingerprint == "fp_9"

    def test_blank_values_are_missing(self):
        sale = make_sale(customer_ip="  ", metadata={"tracker_id": ""}, city="")
        signals = extract_matching_signals(sale)

        assert signals.ip is None
        assert signals.tracker_id is None
        assert signals.city is None

    def test_factors_need_values_on_both_sides(self):
        click = make_click(ip_address="1.2.3.4", tracker_id=None, country="US", city="Austin")
        signals = MatchingSignals(ip="1.2.3.4", tracker_id="trk", country="US", city="Dallas")

        factors = build_confidence_factors(click, signals, FIXED_NOW)

        assert factors.ip_match is True
        assert factors.tracker_match is False
        assert factors.geo_match is False
        assert factors.time_window_minutes == pytest.approx(10)

    def test_click_geo_score(self):
        click = make_click(country="US", region="TX", city="Austin")

        assert calculate_click_geo_score(
            click, MatchingSignals(country="US", city="Austin")
        ) == pytest.approx(1.0)
        assert calculate_click_geo_score(
            click, MatchingSignals(country="US", region="TX", city="Dallas")
        ) == pytest.approx(0.8)
        assert calculate_click_geo_score(click, MatchingSignals(country="US")) == pytest.approx(0.5)
        assert calculate_click_geo_score(click, MatchingSignals(country="CA")) == 0.0

    def test_infer_platform(self):
        assert infer_platform("youtube_channel_42") == "youtube"
        assert infer_platform("x_handle") == "twitter"
        assert infer_platform(None) == "default"
        assert infer_platform("mastodon_1") == "default"
