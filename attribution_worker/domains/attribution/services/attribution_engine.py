"""
Attribution engine container

Owns the long-lived, in-process state (click index, learning model) plus the
optional Redis cache. Built once at startup and injected into the service.
"""

from datetime import datetime
from typing import Callable, Optional

from attribution_worker.core.config.settings import Settings
from attribution_worker.core.logging import get_logger
from attribution_worker.core.redis import RedisClient
from attribution_worker.shared.helpers import now_utc
from ..interfaces import ISentimentProvider
from ..models import LearningConfig
from .adaptive_model import AdaptiveLearningModel
from .click_cache import RedisClickCache
from .click_index import ClickEventStore
from .probabilistic_attribution import ProbabilisticAttributor
from .sentiment_provider import ConstantSentimentProvider

logger = get_logger(__name__)


class AttributionEngine:
    """Click index, learning model and scoring collaborators for one process"""

    def __init__(
        self,
        click_store: ClickEventStore,
        model: AdaptiveLearningModel,
        sentiment_provider: Optional[ISentimentProvider] = None,
        click_cache: Optional[RedisClickCache] = None,
    ):
        self.click_store = click_store
        self.model = model
        self.sentiment_provider = sentiment_provider or ConstantSentimentProvider()
        self.click_cache = click_cache
        self.probabilistic = ProbabilisticAttributor(model, self.sentiment_provider)

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        redis_client: Optional[RedisClient] = None,
        sentiment_provider: Optional[ISentimentProvider] = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> "AttributionEngine":
        attribution = config.attribution
        learning = config.learning

        learning_config = LearningConfig.from_preset(
            learning.LEARNING_PRESET,
            retrain_every=learning.RETRAIN_EVERY,
            retrain_iterations=learning.RETRAIN_ITERATIONS,
            max_retained_samples=learning.MAX_RETAINED_SAMPLES,
        )
        if not learning.LEARNING_PRESET:
            learning_config = learning_config.model_copy(
                update={
                    "min_training_samples": learning.MIN_TRAINING_SAMPLES,
                    "learning_rate": learning.LEARNING_RATE,
                }
            )

        click_store = ClickEventStore(
            window_minutes=attribution.ATTRIBUTION_WINDOW_MINUTES,
            max_clicks_per_user=attribution.MAX_CLICKS_PER_USER,
            sweep_interval_seconds=attribution.CLICK_SWEEP_INTERVAL_SECONDS,
            clock=clock,
        )
        click_cache = None
        if redis_client is not None:
            click_cache = RedisClickCache(
                redis_client,
                ttl_seconds=attribution.CACHE_TTL_SECONDS,
                window_minutes=attribution.ATTRIBUTION_WINDOW_MINUTES,
            )

        logger.info(
            "Attribution engine configured",
            window_minutes=attribution.ATTRIBUTION_WINDOW_MINUTES,
            min_training_samples=learning_config.min_training_samples,
            learning_rate=learning_config.learning_rate,
            redis_cache=click_cache is not None,
        )
        return cls(
            click_store=click_store,
            model=AdaptiveLearningModel(learning_config, clock=clock),
            sentiment_provider=sentiment_provider,
            click_cache=click_cache,
        )

    def start(self) -> None:
        """Start background work; call from a running event loop"""
        self.click_store.start_sweeper()

    async def stop(self) -> None:
        await self.click_store.stop_sweeper()
