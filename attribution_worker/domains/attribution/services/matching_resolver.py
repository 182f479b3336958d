"""
Tiered exact-match resolver

Tries the in-process index, then the Redis cache, then the durable store,
and stops at the first hit. Cache and store failures or timeouts count as a
miss at that tier. A click is claimed in Tier 1 before the first await and
confirmed by a guarded durable update, so concurrent sales never share one.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Optional, Tuple

from attribution_worker.core.logging import get_logger
from attribution_worker.shared.constants.attribution import (
    DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    GEO_MATCH_SCORE,
    IP_MATCH_SCORE,
)
from ..interfaces import IAttributionStore
from ..models import (
    ClickEvent,
    ClickMatch,
    ExactMatch,
    MatchingSignals,
    MatchStrategy,
    ResolutionTier,
    TrackedLink,
)
from .click_cache import RedisClickCache
from .click_index import ClickEventStore

logger = get_logger(__name__)


class MatchingResolver:
    """Resolve at most one click for a sale across the three tiers"""

    def __init__(
        self,
        click_store: ClickEventStore,
        store: IAttributionStore,
        click_cache: Optional[RedisClickCache] = None,
        store_timeout_seconds: float = 5.0,
        window_minutes: int = DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    ):
        self.click_store = click_store
        self.store = store
        self.click_cache = click_cache
        self.store_timeout_seconds = store_timeout_seconds
        self.window_minutes = window_minutes

    async def _guarded(self, operation: str, call: Awaitable[Any], default: Any = None) -> Any:
        """Await a store call with a timeout; failures become the default"""
        try:
            return await asyncio.wait_for(call, timeout=self.store_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Store call timed out", operation=operation, timeout=self.store_timeout_seconds
            )
        except Exception as e:
            logger.warning(
                "Store call failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
        return default

    async def resolve(
        self,
        user_id: str,
        sale_id: str,
        sale_time: datetime,
        signals: MatchingSignals,
        window_minutes: Optional[int] = None,
    ) -> Optional[ExactMatch]:
        window = window_minutes if window_minutes is not None else self.window_minutes

        match = await self._resolve_engine(user_id, sale_id, sale_time, signals, window)
        if match is None and self.click_cache is not None:
            match = await self._resolve_cache(user_id, sale_id, sale_time, signals, window)
        if match is None:
            match = await self._resolve_database(user_id, sale_id, sale_time, signals, window)

        if match is None:
            logger.debug("No exact match at any tier", sale_id=sale_id, user_id=user_id)
        else:
            logger.info(
                "Exact match resolved",
                sale_id=sale_id,
                click_id=match.click.id,
                tier=match.tier.value,
                strategy=match.strategy.value,
            )
        return match

    async def _hydrate(self, click_id: str) -> Optional[Tuple[ClickEvent, TrackedLink]]:
        click = await self._guarded("find_click", self.store.find_click(click_id))
        if click is None:
            return None
        link = await self._guarded("find_link", self.store.find_link(click.link_id))
        if link is None:
            return None
        return click, link

    def _claim_local(self, click_id: str, sale_id: str) -> Optional[bool]:
        """Synchronous Tier 1 claim

        True when this call claimed the click, False when the click is not
        indexed or already belongs to this sale, None when another sale holds it.
        """
        indexed = self.click_store.get_click(click_id)
        if indexed is None:
            return False
        if self.click_store.mark_click_attributed(click_id, sale_id):
            return True
        return False if indexed.sale_id == sale_id else None

    def _follow_owner(self, click_id: str, sale_id: str, owner: str) -> None:
        """Point the Tier 1 entry at the sale the durable store says owns the click"""
        self.click_store.release_click(click_id, sale_id)
        self.click_store.mark_click_attributed(click_id, owner)

    async def _claim_durable(self, click_id: str, sale_id: str) -> bool:
        """Guarded durable update; the store decides which sale wins a click"""
        claimed = await self._guarded(
            "mark_click_attributed", self.store.mark_click_attributed(click_id, sale_id)
        )
        if claimed is None:
            return False
        if claimed:
            return True

        current = await self._guarded("find_click", self.store.find_click(click_id))
        owner = current.sale_id if current is not None else None
        if owner == sale_id:
            return True
        logger.info(
            "Click claimed by a concurrent sale",
            click_id=click_id,
            sale_id=sale_id,
            owner=owner,
        )
        if owner:
            self._follow_owner(click_id, sale_id, owner)
        return False

    async def _accept(
        self, candidate: ClickMatch, sale_id: str, tier: ResolutionTier
    ) -> Optional[ExactMatch]:
        click_id = candidate.click.id
        claimed_locally = self._claim_local(click_id, sale_id)
        if claimed_locally is None:
            logger.debug("Click held by another sale", click_id=click_id, tier=tier.value)
            return None

        match = await self._confirm(candidate, sale_id, tier)
        if match is None and claimed_locally:
            self.click_store.release_click(click_id, sale_id)
        return match

    async def _confirm(
        self, candidate: ClickMatch, sale_id: str, tier: ResolutionTier
    ) -> Optional[ExactMatch]:
        hydrated = await self._hydrate(candidate.click.id)
        if hydrated is None:
            logger.warning(
                "Matched click missing from durable store",
                click_id=candidate.click.id,
                tier=tier.value,
            )
            return None
        click, link = hydrated
        if click.attributed and click.sale_id != sale_id:
            if click.sale_id:
                self._follow_owner(click.id, sale_id, click.sale_id)
            return None
        if not click.attributed and not await self._claim_durable(click.id, sale_id):
            return None

        click.mark_attributed(sale_id)
        if self.click_cache is not None:
            await self.click_cache.mark_click_attributed(click.id, sale_id)
        return ExactMatch(
            click=click,
            link=link,
            tier=tier,
            strategy=candidate.strategy,
            score=candidate.score,
        )

    async def _resolve_engine(
        self,
        user_id: str,
        sale_id: str,
        sale_time: datetime,
        signals: MatchingSignals,
        window: int,
    ) -> Optional[ExactMatch]:
        candidates = self.click_store.find_matching_clicks(user_id, sale_time, signals, window)
        for candidate in candidates:
            match = await self._accept(candidate, sale_id, ResolutionTier.ENGINE)
            if match is not None:
                return match
        return None

    async def _resolve_cache(
        self,
        user_id: str,
        sale_id: str,
        sale_time: datetime,
        signals: MatchingSignals,
        window: int,
    ) -> Optional[ExactMatch]:
        candidate = None
        if signals.tracker_id:
            candidate = await self.click_cache.find_tracker_match(
                user_id, signals.tracker_id, sale_time, window
            )
        if candidate is None:
            candidate = await self.click_cache.find_best_match_for_sale(
                user_id, sale_time, signals, window
            )
        if candidate is None:
            return None
        return await self._accept(candidate, sale_id, ResolutionTier.REDIS)

    async def _resolve_database(
        self,
        user_id: str,
        sale_id: str,
        sale_time: datetime,
        signals: MatchingSignals,
        window: int,
    ) -> Optional[ExactMatch]:
        start, end = self.click_store.window_bounds(sale_time, window)

        candidate = None
        if signals.ip:
            clicks = await self._guarded(
                "find_clicks_by_ip_within_window",
                self.store.find_clicks_by_ip_within_window(user_id, signals.ip, start, end),
                [],
            )
            if clicks:
                candidate = ClickMatch(
                    click=clicks[0], score=IP_MATCH_SCORE, strategy=MatchStrategy.IP_EXACT
                )

        if candidate is None and signals.has_geo():
            clicks = await self._guarded(
                "find_clicks_by_geo_within_window",
                self.store.find_clicks_by_geo_within_window(
                    user_id, signals.country, signals.city, start, end
                ),
                [],
            )
            if clicks:
                candidate = ClickMatch(
                    click=clicks[0], score=GEO_MATCH_SCORE, strategy=MatchStrategy.GEO
                )

        if candidate is None:
            return None
        return await self._accept(candidate, sale_id, ResolutionTier.DATABASE)
