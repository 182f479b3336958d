"""
Tests for probabilistic content attribution and sentiment providers
"""

import math

import pytest

from attribution_worker.domains.attribution.interfaces import ISentimentProvider
from attribution_worker.domains.attribution.models import AudienceSlice
from attribution_worker.domains.attribution.services import (
    ConstantSentimentProvider,
    ProbabilisticAttributor,
    StoredSentimentProvider,
)
from tests.conftest import make_content, make_sale


class ExplodingSentimentProvider(ISentimentProvider):
    def get_sentiment_score(self, content):
        raise RuntimeError("model offline")


@pytest.fixture
def attributor(model):
    return ProbabilisticAttributor(model, ConstantSentimentProvider())


class TestCorrelate:
    def test_recent_twitter_post(self, attributor):
        correlation = attributor.correlate(make_sale(), make_content(minutes_before=10))

        assert correlation.time_decay == pytest.approx(math.exp(-0.5 * 10 / 60))
        assert correlation.score == pytest.approx(0.5600, abs=1e-4)
        assert correlation.geo_score == 0.0
        assert correlation.sentiment_score == 0.5

    def test_older_post_decays(self, attributor):
        correlation = attributor.correlate(make_sale(), make_content(minutes_before=120))

        assert correlation.score == pytest.approx(0.2839, abs=1e-4)

    def test_audience_geo_is_amplified(self, attributor):
        content = make_content(
            audience_breakdown=[
                AudienceSlice(city="Austin", country="US", percentage=0.1),
                AudienceSlice(city="Denver", country="US", percentage=0.4),
            ]
        )

        correlation = attributor.correlate(make_sale(city="austin"), content)

        assert correlation.geo_score == pytest.approx(0.5)
        assert correlation.score == pytest.approx(0.5600 + 0.15, abs=1e-4)

    def test_geo_is_capped(self, attributor):
        content = make_content(audience_breakdown=[AudienceSlice(city="Austin", percentage=0.6)])

        assert attributor.correlate(make_sale(city="Austin"), content).geo_score == 1.0

    def test_platform_inferred_from_account(self, attributor):
        content = make_content(platform=None, social_account_id="youtube_channel_1")

        correlation = attributor.correlate(make_sale(), content)

        assert correlation.platform == "youtube"
        assert correlation.time_decay == pytest.approx(math.exp(-0.1 * 10 / 60))

    def test_sentiment_failure_scores_zero(self, model):
        attributor = ProbabilisticAttributor(model, ExplodingSentimentProvider())

        correlation = attributor.correlate(make_sale(), make_content())

        assert correlation.sentiment_score == 0.0
        assert correlation.score == pytest.approx(0.4600, abs=1e-4)


class TestAttribute:
    def test_window_filter_and_ordering(self, attributor):
        contents = [
            make_content("old", minutes_before=120),
            make_content("fresh", minutes_before=5),
            make_content("outside", minutes_before=2000),
            make_content("future", minutes_before=-5),
        ]

        correlations = attributor.batch_correlate(make_sale(), contents)

        assert [c.content.id for c in correlations] == ["fresh", "old"]

    def test_accepts_above_threshold(self, attributor):
        outcome = attributor.attribute(make_sale(), [make_content(minutes_before=10)])

        assert outcome.accepted is True
        assert outcome.candidates == 1
        assert outcome.best.content.id == "post_1"

    def test_rejects_below_threshold(self, attributor):
        outcome = attributor.attribute(make_sale(), [make_content(minutes_before=120)])

        assert outcome.accepted is False
        assert outcome.score == pytest.approx(0.2839, abs=1e-4)

    def test_no_candidates(self, attributor):
        outcome = attributor.attribute(make_sale(), [])

        assert outcome.best is None
        assert outcome.score == 0.0
        assert outcome.accepted is False


class TestSentimentProviders:
    def test_constant_provider_range(self):
        assert ConstantSentimentProvider(0.8).get_sentiment_score(None) == 0.8
        with pytest.raises(ValueError):
            ConstantSentimentProvider(1.5)

    def test_stored_provider_prefers_content_score(self):
        provider = StoredSentimentProvider(fallback=ConstantSentimentProvider(0.3))

        assert provider.get_sentiment_score(make_content(sentiment_score=0.9)) == 0.9
        assert provider.get_sentiment_score(make_content()) == 0.3
        assert provider.get_sentiment_score(None) == 0.3
