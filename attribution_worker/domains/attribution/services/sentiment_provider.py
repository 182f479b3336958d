"""
Sentiment providers
"""

from typing import Optional

from attribution_worker.shared.constants.attribution import NEUTRAL_SENTIMENT_SCORE
from ..interfaces import ISentimentProvider
from ..models import AttributedContent


class ConstantSentimentProvider(ISentimentProvider):
    """Returns the same score for everything; the default until a sentiment pipeline exists"""

    def __init__(self, score: float = NEUTRAL_SENTIMENT_SCORE):
        if not 0.0 <= score <= 1.0:
            raise ValueError("sentiment score must be within [0, 1]")
        self.score = score

    def get_sentiment_score(self, content: Optional[AttributedContent]) -> float:
        return self.score


class StoredSentimentProvider(ISentimentProvider):
    """Uses a score already attached to the content, else a fallback provider"""

    def __init__(self, fallback: Optional[ISentimentProvider] = None):
        self.fallback = fallback or ConstantSentimentProvider()

    def get_sentiment_score(self, content: Optional[AttributedContent]) -> float:
        if content is not None and content.sentiment_score is not None:
            return min(1.0, max(0.0, content.sentiment_score))
        return self.fallback.get_sentiment_score(content)
