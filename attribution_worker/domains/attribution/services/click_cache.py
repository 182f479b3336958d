"""
Distributed click cache (Tier 2)

Mirrors the Tier 1 indexes in Redis so every instance sees the same click
pool. Every key carries the attribution window as its TTL, so expiry needs no
sweep. Reads degrade to empty results when Redis is unavailable.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from attribution_worker.core.exceptions import RedisError
from attribution_worker.core.logging import get_logger
from attribution_worker.core.redis import RedisClient
from attribution_worker.shared.constants.attribution import (
    DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    FINGERPRINT_MATCH_SCORE,
    GEO_MATCH_SCORE,
    IP_MATCH_SCORE,
    TRACKER_MATCH_SCORE,
)
from attribution_worker.shared.constants.redis import (
    CLICK_CACHE_FINGERPRINT_LIST_SIZE,
    CLICK_CACHE_FINGERPRINT_PREFIX,
    CLICK_CACHE_ID_PREFIX,
    CLICK_CACHE_IP_LIST_SIZE,
    CLICK_CACHE_IP_PREFIX,
    CLICK_CACHE_PREFIX,
    CLICK_CACHE_TRACKER_PREFIX,
    CLICK_CACHE_USER_LIST_SIZE,
    CLICK_CACHE_USER_PREFIX,
    DEFAULT_CLICK_CACHE_TTL_SECONDS,
)
from attribution_worker.shared.helpers import ensure_utc
from ..models import CacheStats, CachedClick, ClickEvent, ClickMatch, MatchingSignals, MatchStrategy
from .signal_extractor import same_place

logger = get_logger(__name__)


class RedisClickCache:
    """Tier 2 click index backed by Redis"""

    def __init__(
        self,
        redis_client: RedisClient,
        ttl_seconds: int = DEFAULT_CLICK_CACHE_TTL_SECONDS,
        window_minutes: int = DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    ):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.window_minutes = window_minutes

    # Writes

    async def cache_click(self, click: ClickEvent) -> bool:
        """Write a click and its index entries in one pipeline; never raises"""
        if click.inferred:
            return False

        payload = CachedClick(**click.model_dump()).model_dump_json()
        ttl = self.ttl_seconds
        commands = [("setex", (f"{CLICK_CACHE_ID_PREFIX}{click.id}", ttl, payload))]

        def push_list(key: str, size: int):
            commands.append(("lpush", (key, click.id)))
            commands.append(("ltrim", (key, 0, size - 1)))
            commands.append(("expire", (key, ttl)))

        if click.ip_address:
            push_list(f"{CLICK_CACHE_IP_PREFIX}{click.ip_address}", CLICK_CACHE_IP_LIST_SIZE)
        if click.tracker_id:
            commands.append(
                ("setex", (f"{CLICK_CACHE_TRACKER_PREFIX}{click.tracker_id}", ttl, click.id))
            )
        if click.fingerprint:
            push_list(
                f"{CLICK_CACHE_FINGERPRINT_PREFIX}{click.fingerprint}",
                CLICK_CACHE_FINGERPRINT_LIST_SIZE,
            )
        push_list(f"{CLICK_CACHE_USER_PREFIX}{click.user_id}", CLICK_CACHE_USER_LIST_SIZE)

        try:
            await self.redis.execute_pipeline(commands)
            return True
        except RedisError as e:
            logger.warning("Failed to cache click", click_id=click.id, error=str(e))
            return False

    async def mark_click_attributed(self, click_id: str, sale_id: str) -> bool:
        """Rewrite the cached click as attributed, keeping its remaining TTL"""
        key = f"{CLICK_CACHE_ID_PREFIX}{click_id}"
        try:
            click = await self.get_click_by_id(click_id)
            if click is None:
                return False
            if not click.mark_attributed(sale_id):
                return True
            remaining = await self.redis.ttl(key)
            ttl = remaining if remaining and remaining > 0 else self.ttl_seconds
            await self.redis.setex(key, ttl, click.model_dump_json())
            return True
        except RedisError as e:
            logger.warning(
                "Failed to mark cached click attributed", click_id=click_id, error=str(e)
            )
            return False

    # Reads

    def _decode(self, raw: Optional[str]) -> Optional[CachedClick]:
        if not raw:
            return None
        try:
            return CachedClick.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning("Discarding malformed cached click", error=str(e))
            return None

    async def get_click_by_id(self, click_id: str) -> Optional[CachedClick]:
        try:
            return self._decode(await self.redis.get(f"{CLICK_CACHE_ID_PREFIX}{click_id}"))
        except RedisError as e:
            logger.warning("Cache read failed", click_id=click_id, error=str(e))
            return None

    async def _clicks_from_list(
        self,
        key: str,
        user_id: str,
        limit: int,
        exclude_attributed: bool,
    ) -> List[CachedClick]:
        try:
            click_ids = await self.redis.lrange(key, 0, limit * 2 - 1)
            if not click_ids:
                return []
            raw_clicks = await self.redis.mget(
                [f"{CLICK_CACHE_ID_PREFIX}{click_id}" for click_id in click_ids]
            )
        except RedisError as e:
            logger.warning("Cache list read failed", key=key, error=str(e))
            return []

        clicks = []
        for raw in raw_clicks:
            click = self._decode(raw)
            if click is None or click.user_id != user_id:
                continue
            if exclude_attributed and click.attributed:
                continue
            clicks.append(click)
            if len(clicks) >= limit:
                break
        return clicks

    async def find_clicks_by_ip(
        self, ip: str, user_id: str, limit: int = 10, exclude_attributed: bool = True
    ) -> List[CachedClick]:
        return await self._clicks_from_list(
            f"{CLICK_CACHE_IP_PREFIX}{ip}", user_id, limit, exclude_attributed
        )

    async def find_clicks_by_fingerprint(
        self,
        fingerprint: str,
        user_id: str,
        limit: int = 10,
        exclude_attributed: bool = True,
    ) -> List[CachedClick]:
        return await self._clicks_from_list(
            f"{CLICK_CACHE_FINGERPRINT_PREFIX}{fingerprint}",
            user_id,
            limit,
            exclude_attributed,
        )

    async def find_clicks_by_user(
        self, user_id: str, limit: int = 50, exclude_attributed: bool = True
    ) -> List[CachedClick]:
        return await self._clicks_from_list(
            f"{CLICK_CACHE_USER_PREFIX}{user_id}", user_id, limit, exclude_attributed
        )

    async def find_click_by_tracker(self, tracker_id: str) -> Optional[CachedClick]:
        try:
            click_id = await self.redis.get(f"{CLICK_CACHE_TRACKER_PREFIX}{tracker_id}")
        except RedisError as e:
            logger.warning("Tracker lookup failed", tracker_id=tracker_id, error=str(e))
            return None
        if not click_id:
            return None
        return await self.get_click_by_id(click_id)

    def _window(self, sale_time: datetime, window_minutes: Optional[int]) -> tuple:
        sale_time = ensure_utc(sale_time)
        minutes = window_minutes if window_minutes is not None else self.window_minutes
        return sale_time - timedelta(minutes=minutes), sale_time

    async def find_tracker_match(
        self,
        user_id: str,
        tracker_id: str,
        sale_time: datetime,
        window_minutes: Optional[int] = None,
    ) -> Optional[ClickMatch]:
        """Deterministic tracker slot lookup with window and eligibility checks"""
        start, end = self._window(sale_time, window_minutes)
        click = await self.find_click_by_tracker(tracker_id)
        if (
            click is None
            or click.user_id != user_id
            or click.attributed
            or not start <= click.clicked_at <= end
        ):
            return None
        return ClickMatch(click=click, score=TRACKER_MATCH_SCORE, strategy=MatchStrategy.TRACKER)

    async def find_best_match_for_sale(
        self,
        user_id: str,
        sale_time: datetime,
        signals: MatchingSignals,
        window_minutes: Optional[int] = None,
    ) -> Optional[ClickMatch]:
        """First cached click matching the sale, in Tier 1 strategy order"""
        start, end = self._window(sale_time, window_minutes)

        def in_window(click: ClickEvent) -> bool:
            return start <= click.clicked_at <= end

        if signals.ip:
            for click in await self.find_clicks_by_ip(signals.ip, user_id, limit=5):
                if in_window(click):
                    return ClickMatch(click=click, score=IP_MATCH_SCORE, strategy=MatchStrategy.IP_EXACT)

        if signals.tracker_id:
            match = await self.find_tracker_match(
                user_id, signals.tracker_id, sale_time, window_minutes
            )
            if match is not None:
                return match

        if signals.fingerprint:
            for click in await self.find_clicks_by_fingerprint(
                signals.fingerprint, user_id, limit=5
            ):
                if in_window(click):
                    return ClickMatch(
                        click=click,
                        score=FINGERPRINT_MATCH_SCORE,
                        strategy=MatchStrategy.FINGERPRINT,
                    )

        if signals.has_geo():
            for click in await self.find_clicks_by_user(user_id, limit=20):
                if (
                    in_window(click)
                    and same_place(click.country, signals.country)
                    and same_place(click.city, signals.city)
                ):
                    return ClickMatch(click=click, score=GEO_MATCH_SCORE, strategy=MatchStrategy.GEO)

        return None

    async def get_cache_stats(self) -> CacheStats:
        """Key count plus the client's operation metrics"""
        try:
            total = await self.redis.count_keys(f"{CLICK_CACHE_PREFIX}*")
            connected = True
        except RedisError as e:
            logger.warning("Cache stats unavailable", error=str(e))
            total, connected = 0, False

        metrics = self.redis.get_metrics()
        return CacheStats(
            connected=connected,
            total_keys=total,
            total_operations=metrics.total_operations,
            failed_operations=metrics.failed_operations,
            average_response_time_ms=round(metrics.average_response_time_ms, 3),
        )
