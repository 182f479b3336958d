"""
Probabilistic attribution fallback

Scores a creator's recent content against a sale when no click resolves.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from attribution_worker.core.logging import get_logger
from attribution_worker.shared.constants.attribution import (
    AUDIENCE_GEO_AMPLIFICATION,
    DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    DEFAULT_MIN_CONFIDENCE,
)
from attribution_worker.shared.helpers import minutes_between
from ..interfaces import ISentimentProvider
from ..models import AttributedContent, ContentCorrelation, ModelWeights, SaleEvent
from .adaptive_model import AdaptiveLearningModel
from .signal_extractor import infer_platform, same_place

logger = get_logger(__name__)


@dataclass
class ProbabilisticOutcome:
    """Best candidate and whether it cleared the confidence bar"""

    best: Optional[ContentCorrelation]
    accepted: bool
    candidates: int

    @property
    def score(self) -> float:
        return self.best.score if self.best else 0.0


def audience_geo_score(content: AttributedContent, city: Optional[str]) -> float:
    """Share of the audience in the buyer's city, amplified x5 and capped at 1.0"""
    if not city:
        return 0.0
    for audience in content.audience_breakdown:
        if same_place(audience.city, city):
            return min(1.0, audience.percentage * AUDIENCE_GEO_AMPLIFICATION)
    return 0.0


class ProbabilisticAttributor:
    """Time-decay / geo / sentiment ensemble over candidate content"""

    def __init__(
        self, model: AdaptiveLearningModel, sentiment_provider: ISentimentProvider
    ):
        self.model = model
        self.sentiment_provider = sentiment_provider

    def _sentiment(self, content: AttributedContent) -> float:
        try:
            return min(1.0, max(0.0, self.sentiment_provider.get_sentiment_score(content)))
        except Exception as e:
            logger.warning(
                "Sentiment lookup failed, using 0", content_id=content.id, error=str(e)
            )
            return 0.0

    def _geo(self, content: AttributedContent, city: Optional[str]) -> float:
        try:
            return audience_geo_score(content, city)
        except Exception as e:
            logger.warning(
                "Audience geo lookup failed, using 0", content_id=content.id, error=str(e)
            )
            return 0.0

    def correlate(
        self,
        sale: SaleEvent,
        content: AttributedContent,
        weights: Optional[ModelWeights] = None,
    ) -> ContentCorrelation:
        """Score one content item against a sale"""
        weights = weights or self.model.scoring_weights
        platform = (content.platform or infer_platform(content.social_account_id)).lower()
        elapsed = max(0.0, minutes_between(content.posted_at, sale.created_at))

        time_decay = weights.time_score(platform, elapsed)
        geo_score = self._geo(content, sale.city)
        sentiment_score = self._sentiment(content)
        score = (
            weights.time_weight * time_decay
            + weights.geo_weight * geo_score
            + weights.sentiment_weight * sentiment_score
        )

        return ContentCorrelation(
            content=content,
            platform=platform,
            score=min(1.0, max(0.0, score)),
            time_delta_minutes=elapsed,
            time_decay=time_decay,
            geo_score=geo_score,
            sentiment_score=sentiment_score,
        )

    def batch_correlate(
        self,
        sale: SaleEvent,
        contents: List[AttributedContent],
        window_minutes: int = DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    ) -> List[ContentCorrelation]:
        """Score all in-window candidates, best first"""
        window_start = sale.created_at - timedelta(minutes=window_minutes)
        weights = self.model.scoring_weights
        correlations = [
            self.correlate(sale, content, weights)
            for content in contents
            if window_start <= content.posted_at <= sale.created_at
        ]
        correlations.sort(key=lambda c: c.score, reverse=True)
        return correlations

    def attribute(
        self,
        sale: SaleEvent,
        contents: List[AttributedContent],
        window_minutes: int = DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> ProbabilisticOutcome:
        correlations = self.batch_correlate(sale, contents, window_minutes)
        if not correlations:
            return ProbabilisticOutcome(best=None, accepted=False, candidates=0)

        best = correlations[0]
        accepted = best.score >= min_confidence
        logger.debug(
            "Probabilistic candidates scored",
            sale_id=sale.id,
            candidates=len(correlations),
            best_score=round(best.score, 4),
            accepted=accepted,
        )
        return ProbabilisticOutcome(
            best=best, accepted=accepted, candidates=len(correlations)
        )
