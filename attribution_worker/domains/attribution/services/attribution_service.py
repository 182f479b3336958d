"""
Attribution orchestration service

Single entry point per sale: signal extraction, tiered resolution,
confidence scoring, ground-truth recording and persistence, with the
probabilistic content fallback when no click resolves.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional

from attribution_worker.core.exceptions import (
    AttributionError,
    AttributionNotFoundError,
    AttributionPersistenceError,
    AttributionStateError,
)
from attribution_worker.core.logging import get_logger
from ..interfaces import IAttributionStore
from ..models import (
    AttributionOptions,
    AttributionRecord,
    AttributionResult,
    AttributionStatus,
    ClickEvent,
    ClickStats,
    ExactMatch,
    ExactMatchEvidence,
    FeedbackFeatures,
    MatchingSignals,
    ModelState,
    ModelStatus,
    MatchType,
    PredictionFeedback,
    ProbabilisticMatchEvidence,
    REVIEWED_STATUSES,
    SaleEvent,
    TrackedLink,
)
from .attribution_engine import AttributionEngine
from .confidence_scorer import (
    calculate_confidence,
    determine_match_type,
    status_for_confidence,
)
from .matching_resolver import MatchingResolver
from .probabilistic_attribution import ProbabilisticOutcome
from .signal_extractor import (
    build_confidence_factors,
    calculate_click_geo_score,
    extract_matching_signals,
    time_delta_minutes,
)

logger = get_logger(__name__)

class AttributionService:
    """Attributes sales to clicks or content and learns from review feedback"""

    def __init__(
        self,
        engine: AttributionEngine,
        store: IAttributionStore,
        default_options: Optional[AttributionOptions] = None,
        store_timeout_seconds: float = 5.0,
        materialize_inferred_clicks: bool = False,
    ):
        self.engine = engine
        self.store = store
        self.default_options = default_options or AttributionOptions()
        self.store_timeout_seconds = store_timeout_seconds
        self.materialize_inferred_clicks = materialize_inferred_clicks
        self.resolver = MatchingResolver(
            click_store=engine.click_store,
            store=store,
            click_cache=engine.click_cache,
            store_timeout_seconds=store_timeout_seconds,
            window_minutes=self.default_options.window_minutes,
        )
        # key -> [lock, holders]
        self._sale_locks: Dict[str, List[Any]] = {}
        self._feedback_locks: Dict[str, List[Any]] = {}

    # Helpers

    async def _best_effort(self, operation: str, call: Awaitable[Any], default: Any = None) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self.store_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Store call timed out", operation=operation)
        except Exception as e:
            logger.warning(
                "Store call failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
        return default

    async def _required(self, operation: str, attribution_id: str, call: Awaitable[Any]) -> Any:
        """Store call whose failure aborts the request as a persistence error"""
        try:
            return await asyncio.wait_for(call, timeout=self.store_timeout_seconds)
        except AttributionError:
            raise
        except Exception as e:
            logger.error(
                "Store call failed",
                operation=operation,
                attribution_id=attribution_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AttributionPersistenceError(cause=e, attribution_id=attribution_id)

    @staticmethod
    @asynccontextmanager
    async def _keyed_lock(registry: Dict[str, List[Any]], key: str) -> AsyncIterator[None]:
        """Serialize in-process work on one key; entries are dropped when idle"""
        entry = registry.get(key)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            registry[key] = entry
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                registry.pop(key, None)

    def _sale_lock(self, sale_id: str):
        return self._keyed_lock(self._sale_locks, sale_id)

    def _sentiment_for_sale(self) -> float:
        try:
            return self.engine.sentiment_provider.get_sentiment_score(None)
        except Exception as e:
            logger.warning("Sentiment lookup failed, using 0", error=str(e))
            return 0.0

    async def _persist(self, record: AttributionRecord) -> AttributionRecord:
        """Final write; the only failure that reaches the caller"""
        try:
            return await asyncio.wait_for(
                self.store.create_attribution(record), timeout=self.store_timeout_seconds
            )
        except Exception as e:
            # A concurrent delivery may have won the unique sale_id constraint
            existing = await self._best_effort(
                "find_attribution_by_sale_id",
                self.store.find_attribution_by_sale_id(record.sale_id),
            )
            if existing is not None:
                logger.info(
                    "Attribution already stored by concurrent delivery",
                    sale_id=record.sale_id,
                )
                return existing
            logger.error(
                "Failed to persist attribution",
                sale_id=record.sale_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AttributionPersistenceError(record.sale_id, cause=e)

    async def _result_from_record(self, record: AttributionRecord) -> AttributionResult:
        click: Optional[ClickEvent] = None
        link: Optional[TrackedLink] = None
        if record.click_id:
            click = await self._best_effort("find_click", self.store.find_click(record.click_id))
        if record.link_id:
            link = await self._best_effort("find_link", self.store.find_link(record.link_id))
        return AttributionResult(
            attributed=True,
            confidence=record.confidence_score,
            match_type=record.match_type,
            attribution=record,
            matched_click=click,
            matched_link=link,
        )

    # Produced interface

    async def record_click(self, click: ClickEvent) -> bool:
        """Index a click in Tier 1 and Tier 2; never raises on cache failure"""
        if click.inferred:
            return False
        recorded = self.engine.click_store.record_click(click)
        if self.engine.click_cache is not None:
            await self.engine.click_cache.cache_click(click)
        return recorded

    async def attribute_sale(
        self, sale: SaleEvent, options: Optional[AttributionOptions] = None
    ) -> AttributionResult:
        """Attribute one sale; repeated calls for the same sale return the stored result"""
        options = options or self.default_options

        async with self._sale_lock(sale.id):
            existing = await self._best_effort(
                "find_attribution_by_sale_id", self.store.find_attribution_by_sale_id(sale.id)
            )
            if existing is not None:
                logger.debug("Sale already attributed", sale_id=sale.id)
                return await self._result_from_record(existing)

            signals = extract_matching_signals(sale)
            match = await self.resolver.resolve(
                sale.user_id, sale.id, sale.created_at, signals, options.window_minutes
            )
            if match is not None:
                return await self._attribute_exact(sale, signals, match)

            return await self._attribute_probabilistically(sale, options)

    async def _attribute_exact(
        self, sale: SaleEvent, signals: MatchingSignals, match: ExactMatch
    ) -> AttributionResult:
        click, link = match.click, match.link
        factors = build_confidence_factors(click, signals, sale.created_at)
        confidence = calculate_confidence(factors)
        match_type = determine_match_type(factors)
        delta = time_delta_minutes(click.clicked_at, sale.created_at)

        try:
            self.engine.model.record_ground_truth(
                click_id=click.id,
                sale_id=sale.id,
                time_delta_minutes=delta,
                geo_score=calculate_click_geo_score(click, signals),
                sentiment_score=self._sentiment_for_sale(),
                platform=(link.platform or click.platform).lower(),
            )
        except Exception as e:
            logger.warning("Ground truth recording failed", sale_id=sale.id, error=str(e))

        record = AttributionRecord(
            id=str(uuid.uuid4()),
            user_id=sale.user_id,
            sale_id=sale.id,
            click_id=click.id,
            link_id=link.id,
            confidence_score=confidence,
            status=status_for_confidence(confidence),
            time_delta_minutes=delta,
            matched_by=ExactMatchEvidence(
                match_type=match_type,
                tier=match.tier,
                strategy=match.strategy,
                provisional_score=match.score,
                ip_match=factors.ip_match,
                tracker_match=factors.tracker_match,
                fingerprint_match=factors.fingerprint_match,
                geo_match=factors.geo_match,
                signals=factors.matched_signals,
                time_window_minutes=delta,
            ),
        )
        stored = await self._persist(record)

        logger.info(
            "✅ Sale attributed to click",
            sale_id=sale.id,
            click_id=click.id,
            tier=match.tier.value,
            match_type=match_type.value,
            confidence=confidence,
            status=stored.status.value,
        )
        return AttributionResult(
            attributed=True,
            confidence=stored.confidence_score,
            match_type=stored.match_type,
            attribution=stored,
            matched_click=click,
            matched_link=link,
        )

    async def _attribute_probabilistically(
        self, sale: SaleEvent, options: AttributionOptions
    ) -> AttributionResult:
        window_start = sale.created_at - timedelta(minutes=options.window_minutes)
        contents = await self._best_effort(
            "find_recent_content",
            self.store.find_recent_content(sale.user_id, window_start, sale.created_at),
            [],
        )

        outcome: ProbabilisticOutcome = self.engine.probabilistic.attribute(
            sale, contents, options.window_minutes, options.min_confidence
        )
        if outcome.best is None:
            logger.info("Sale left unattributed, no candidates", sale_id=sale.id)
            return AttributionResult.unattributed()
        if not outcome.accepted:
            logger.info(
                "Sale left unattributed, best candidate below threshold",
                sale_id=sale.id,
                best_score=round(outcome.score, 4),
                min_confidence=options.min_confidence,
            )
            return AttributionResult.unattributed(
                confidence=round(outcome.score, 4), match_type=MatchType.PROBABILISTIC
            )

        best = outcome.best
        confidence = round(best.score, 4)
        inferred_click = await self._materialize_inferred_click(sale, best.platform, best.time_delta_minutes)

        record = AttributionRecord(
            id=str(uuid.uuid4()),
            user_id=sale.user_id,
            sale_id=sale.id,
            click_id=inferred_click.id if inferred_click else None,
            link_id=inferred_click.link_id if inferred_click else None,
            content_id=best.content.id,
            confidence_score=confidence,
            status=status_for_confidence(confidence),
            time_delta_minutes=int(best.time_delta_minutes),
            matched_by=ProbabilisticMatchEvidence(
                content_id=best.content.id,
                platform=best.platform,
                time_decay=round(best.time_decay, 6),
                geo_score=best.geo_score,
                sentiment_score=best.sentiment_score,
                weights_version=self.engine.model.scoring_weights.version,
                inferred_click_id=inferred_click.id if inferred_click else None,
            ),
        )
        stored = await self._persist(record)

        logger.info(
            "Sale attributed to content",
            sale_id=sale.id,
            content_id=best.content.id,
            confidence=confidence,
            status=stored.status.value,
        )
        return await self._result_from_record(stored)

    async def _materialize_inferred_click(
        self, sale: SaleEvent, platform: str, minutes_before: float
    ) -> Optional[ClickEvent]:
        """Optional placeholder click; skipped on any store failure"""
        if not self.materialize_inferred_clicks:
            return None
        link = await self._best_effort(
            "create_synthetic_link", self.store.create_synthetic_link(sale.user_id)
        )
        if link is None:
            return None
        click = ClickEvent(
            id=str(uuid.uuid4()),
            link_id=link.id,
            user_id=sale.user_id,
            platform=platform,
            clicked_at=sale.created_at - timedelta(minutes=minutes_before),
            attributed=True,
            sale_id=sale.id,
            inferred=True,
        )
        return await self._best_effort("create_click", self.store.create_click(click))

    async def process_attribution_feedback(
        self, attribution_id: str, confirmed: bool
    ) -> AttributionRecord:
        """Apply a human verdict: update status, then feed the learning model

        The model only learns once the conditional status write succeeds, so
        a verdict is learned from at most once.
        """
        new_status = AttributionStatus.CONFIRMED if confirmed else AttributionStatus.REJECTED

        async with self._keyed_lock(self._feedback_locks, attribution_id):
            record = await self._required(
                "find_attribution_by_id",
                attribution_id,
                self.store.find_attribution_by_id(attribution_id),
            )
            if record is None:
                raise AttributionNotFoundError(attribution_id)
            if record.status in REVIEWED_STATUSES:
                raise AttributionStateError(attribution_id, record.status.value, new_status.value)

            features = await self._feedback_features(record)
            updated = await self._required(
                "update_attribution_status",
                attribution_id,
                self.store.update_attribution_status(attribution_id, new_status),
            )

        self.engine.model.provide_feedback(
            PredictionFeedback(
                sale_id=record.sale_id,
                click_id=record.click_id,
                predicted_score=record.confidence_score,
                actual_converted=confirmed,
                features=features,
            )
        )
        logger.info(
            "Attribution reviewed",
            attribution_id=attribution_id,
            sale_id=record.sale_id,
            status=new_status.value,
        )
        return updated

    async def _feedback_features(self, record: AttributionRecord) -> FeedbackFeatures:
        evidence = record.matched_by
        delta = float(record.time_delta_minutes or 0)

        if isinstance(evidence, ProbabilisticMatchEvidence):
            return FeedbackFeatures(
                time_delta_minutes=delta,
                geo_score=evidence.geo_score,
                sentiment_score=evidence.sentiment_score,
                platform=evidence.platform,
            )

        geo_score = 0.0
        platform = "default"
        click = None
        if record.click_id:
            click = await self._best_effort("find_click", self.store.find_click(record.click_id))
        sale = await self._best_effort("find_sale_by_id", self.store.find_sale_by_id(record.sale_id))
        if click is not None:
            platform = click.platform
            if sale is not None:
                geo_score = calculate_click_geo_score(click, extract_matching_signals(sale))
        if record.link_id:
            link = await self._best_effort("find_link", self.store.find_link(record.link_id))
            if link is not None:
                platform = link.platform

        return FeedbackFeatures(
            time_delta_minutes=delta,
            geo_score=geo_score,
            sentiment_score=min(1.0, max(0.0, self._sentiment_for_sale())),
            platform=(platform or "default").lower(),
        )

    # Introspection

    def get_model_state(self) -> ModelState:
        return self.engine.model.get_model_state()

    def get_click_stats(self) -> ClickStats:
        return self.engine.click_store.get_click_stats()

    def get_unattributed_clicks_for_user(self, user_id: str) -> List[ClickEvent]:
        return self.engine.click_store.get_unattributed_clicks(user_id)

    def get_model_status(self) -> ModelStatus:
        return ModelStatus(
            model=self.get_model_state(),
            clicks=self.get_click_stats(),
            health=self.engine.model.check_learning_health(),
        )

    async def get_extended_model_status(self) -> ModelStatus:
        status = self.get_model_status()
        if self.engine.click_cache is not None:
            status.cache = await self.engine.click_cache.get_cache_stats()
        return status
