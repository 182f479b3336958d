"""
Attribution domain services
"""

from .click_index import TimeIndexedClickBuffer, ClickEventStore
from .click_cache import RedisClickCache
from .signal_extractor import (
    extract_matching_signals,
    build_confidence_factors,
    calculate_click_geo_score,
    infer_platform,
)
from .confidence_scorer import (
    calculate_confidence,
    determine_match_type,
    status_for_confidence,
)
from .adaptive_model import AdaptiveLearningModel
from .sentiment_provider import ConstantSentimentProvider, StoredSentimentProvider
from .probabilistic_attribution import ProbabilisticAttributor, ProbabilisticOutcome
from .matching_resolver import MatchingResolver
from .attribution_engine import AttributionEngine
from .attribution_service import AttributionService
from .sql_attribution_store import SqlAlchemyAttributionStore
from .content_attribution_engine import (
    ContentAttributionEngine,
    get_confidence_label,
    get_reason_label,
)
from .content_attribution_service import ContentAttributionService

__all__ = [
    "TimeIndexedClickBuffer",
    "ClickEventStore",
    "RedisClickCache",
    "extract_matching_signals",
    "build_confidence_factors",
    "calculate_click_geo_score",
    "infer_platform",
    "calculate_confidence",
    "determine_match_type",
    "status_for_confidence",
    "AdaptiveLearningModel",
    "ConstantSentimentProvider",
    "StoredSentimentProvider",
    "ProbabilisticAttributor",
    "ProbabilisticOutcome",
    "MatchingResolver",
    "AttributionEngine",
    "AttributionService",
    "SqlAlchemyAttributionStore",
    "ContentAttributionEngine",
    "ContentAttributionService",
    "get_confidence_label",
    "get_reason_label",
]
