from .attribution_store import IAttributionStore
from .sentiment_provider import ISentimentProvider

__all__ = ["IAttributionStore", "ISentimentProvider"]
