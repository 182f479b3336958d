"""
Sentiment signal provider interface
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import AttributedContent


class ISentimentProvider(ABC):
    """Supplies a 0..1 sentiment score for a content item"""

    @abstractmethod
    def get_sentiment_score(self, content: Optional[AttributedContent]) -> float:
        """Score for the content, or for the sale itself when content is None"""
        pass
