"""
In-process click index (Tier 1)

Clicks are indexed by user, IP, tracker id and device fingerprint. Each
multi-valued index is a TimeIndexedClickBuffer kept sorted by click time, so
window queries and expiry are bisections rather than scans.

All mutations are synchronous and run on the event loop thread, so no
lookup can observe a half-applied update. The sweep builds fresh indexes and
swaps them in.
"""

import asyncio
import bisect
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Set

from attribution_worker.core.logging import get_logger
from attribution_worker.shared.constants.attribution import (
    DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    DEFAULT_CLICK_SWEEP_INTERVAL_SECONDS,
    DEFAULT_MAX_CLICKS_PER_USER,
    FINGERPRINT_MATCH_SCORE,
    GEO_MATCH_SCORE,
    IP_MATCH_SCORE,
    TRACKER_MATCH_SCORE,
)
from attribution_worker.shared.helpers import ensure_utc, now_utc
from ..models import ClickEvent, ClickMatch, ClickStats, MatchingSignals, MatchStrategy
from .signal_extractor import same_place

logger = get_logger(__name__)


def _clicked_at(click: ClickEvent) -> datetime:
    return click.clicked_at


class TimeIndexedClickBuffer:
    """Clicks for one index key, ordered by click time and optionally bounded"""

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size
        self._clicks: List[ClickEvent] = []

    def __len__(self) -> int:
        return len(self._clicks)

    def __iter__(self) -> Iterator[ClickEvent]:
        return iter(self._clicks)

    def add(self, click: ClickEvent) -> Optional[ClickEvent]:
        """Insert in time order; returns the oldest click if the bound pushed it out"""
        bisect.insort_right(self._clicks, click, key=_clicked_at)
        if self.max_size is not None and len(self._clicks) > self.max_size:
            return self._clicks.pop(0)
        return None

    def remove(self, click_id: str) -> bool:
        for index, click in enumerate(self._clicks):
            if click.id == click_id:
                del self._clicks[index]
                return True
        return False

    def within(self, start: datetime, end: datetime) -> List[ClickEvent]:
        """Clicks with start <= clicked_at <= end, oldest first"""
        lo = bisect.bisect_left(self._clicks, start, key=_clicked_at)
        hi = bisect.bisect_right(self._clicks, end, key=_clicked_at)
        return self._clicks[lo:hi]

    def newer_than(self, cutoff: datetime) -> List[ClickEvent]:
        """Clicks with clicked_at >= cutoff"""
        lo = bisect.bisect_left(self._clicks, cutoff, key=_clicked_at)
        return self._clicks[lo:]

    def copy_from(self, clicks: List[ClickEvent]) -> "TimeIndexedClickBuffer":
        buffer = TimeIndexedClickBuffer(self.max_size)
        buffer._clicks = list(clicks)
        return buffer


class ClickEventStore:
    """Tier 1 click index with TTL sweep"""

    def __init__(
        self,
        window_minutes: int = DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
        max_clicks_per_user: int = DEFAULT_MAX_CLICKS_PER_USER,
        sweep_interval_seconds: float = DEFAULT_CLICK_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.window_minutes = window_minutes
        self.max_clicks_per_user = max_clicks_per_user
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock

        self._by_id: Dict[str, ClickEvent] = {}
        self._by_user: Dict[str, TimeIndexedClickBuffer] = {}
        self._by_ip: Dict[str, TimeIndexedClickBuffer] = {}
        self._by_fingerprint: Dict[str, TimeIndexedClickBuffer] = {}
        self._by_tracker: Dict[str, ClickEvent] = {}

        self._sweep_task: Optional[asyncio.Task] = None

    # Recording

    def record_click(self, click: ClickEvent) -> bool:
        """Index a click; inferred and already-known clicks are ignored"""
        if click.inferred or click.id in self._by_id:
            return False

        self._by_id[click.id] = click

        user_buffer = self._by_user.get(click.user_id)
        if user_buffer is None:
            user_buffer = TimeIndexedClickBuffer(self.max_clicks_per_user)
            self._by_user[click.user_id] = user_buffer
        evicted = user_buffer.add(click)

        if click.ip_address:
            self._by_ip.setdefault(click.ip_address, TimeIndexedClickBuffer()).add(click)
        if click.fingerprint:
            self._by_fingerprint.setdefault(
                click.fingerprint, TimeIndexedClickBuffer()
            ).add(click)
        if click.tracker_id:
            current = self._by_tracker.get(click.tracker_id)
            if current is None or click.clicked_at >= current.clicked_at:
                self._by_tracker[click.tracker_id] = click

        if evicted is not None:
            self._forget(evicted, keep_user_index=True)

        logger.debug("Click indexed", click_id=click.id, user_id=click.user_id)
        return True

    def _forget(self, click: ClickEvent, keep_user_index: bool = False) -> None:
        self._by_id.pop(click.id, None)
        if not keep_user_index and click.user_id in self._by_user:
            self._by_user[click.user_id].remove(click.id)
        if click.ip_address and click.ip_address in self._by_ip:
            self._by_ip[click.ip_address].remove(click.id)
        if click.fingerprint and click.fingerprint in self._by_fingerprint:
            self._by_fingerprint[click.fingerprint].remove(click.id)
        if click.tracker_id and self._by_tracker.get(click.tracker_id) is click:
            del self._by_tracker[click.tracker_id]

    # Lookup

    def window_bounds(
        self, sale_time: datetime, window_minutes: Optional[int] = None
    ) -> tuple:
        sale_time = ensure_utc(sale_time)
        minutes = window_minutes if window_minutes is not None else self.window_minutes
        return sale_time - timedelta(minutes=minutes), sale_time

    @staticmethod
    def _eligible(click: ClickEvent, user_id: str) -> bool:
        return click.user_id == user_id and not click.attributed and not click.inferred

    def find_matching_clicks(
        self,
        user_id: str,
        sale_time: datetime,
        signals: MatchingSignals,
        window_minutes: Optional[int] = None,
    ) -> List[ClickMatch]:
        """All eligible clicks matching the sale, best strategy score first"""
        start, end = self.window_bounds(sale_time, window_minutes)
        matches: List[ClickMatch] = []
        seen: Set[str] = set()

        def collect(candidates: List[ClickEvent], score: float, strategy: MatchStrategy):
            for click in candidates:
                if click.id in seen or not self._eligible(click, user_id):
                    continue
                seen.add(click.id)
                matches.append(ClickMatch(click=click, score=score, strategy=strategy))

        if signals.ip and signals.ip in self._by_ip:
            collect(
                self._by_ip[signals.ip].within(start, end),
                IP_MATCH_SCORE,
                MatchStrategy.IP_EXACT,
            )

        if signals.tracker_id:
            tracked = self._by_tracker.get(signals.tracker_id)
            if tracked is not None and start <= tracked.clicked_at <= end:
                collect([tracked], TRACKER_MATCH_SCORE, MatchStrategy.TRACKER)

        if signals.fingerprint and signals.fingerprint in self._by_fingerprint:
            collect(
                self._by_fingerprint[signals.fingerprint].within(start, end),
                FINGERPRINT_MATCH_SCORE,
                MatchStrategy.FINGERPRINT,
            )

        if signals.has_geo() and user_id in self._by_user:
            collect(
                [
                    click
                    for click in self._by_user[user_id].within(start, end)
                    if same_place(click.country, signals.country)
                    and same_place(click.city, signals.city)
                ],
                GEO_MATCH_SCORE,
                MatchStrategy.GEO,
            )

        # Stable sort keeps strategy order, and newer clicks first within one strategy
        matches.reverse()
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def get_click(self, click_id: str) -> Optional[ClickEvent]:
        return self._by_id.get(click_id)

    def mark_click_attributed(self, click_id: str, sale_id: str) -> bool:
        """Flag an indexed click as attributed; idempotent"""
        click = self._by_id.get(click_id)
        if click is None:
            return False
        return click.mark_attributed(sale_id)

    def release_click(self, click_id: str, sale_id: str) -> bool:
        """Undo a claim made for sale_id; claims held by other sales are left alone"""
        click = self._by_id.get(click_id)
        if click is None or not click.attributed or click.sale_id != sale_id:
            return False
        click.attributed = False
        click.sale_id = None
        return True

    def get_unattributed_clicks(self, user_id: str) -> List[ClickEvent]:
        """Live, unattributed clicks for a user, newest first"""
        buffer = self._by_user.get(user_id)
        if buffer is None:
            return []
        cutoff = self._clock() - timedelta(minutes=self.window_minutes)
        clicks = [c for c in buffer.newer_than(cutoff) if not c.attributed]
        return list(reversed(clicks))

    def get_click_stats(self) -> ClickStats:
        clicks = list(self._by_id.values())
        return ClickStats(
            total_clicks=len(clicks),
            unattributed_clicks=sum(1 for c in clicks if not c.attributed),
            unique_users=len({c.user_id for c in clicks}),
            unique_ips=len({c.ip_address for c in clicks if c.ip_address}),
        )

    # Expiry

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Drop clicks older than the attribution window from every index"""
        cutoff = ensure_utc(now or self._clock()) - timedelta(minutes=self.window_minutes)

        def compact(index: Dict[str, TimeIndexedClickBuffer]) -> Dict[str, TimeIndexedClickBuffer]:
            fresh = {}
            for key, buffer in index.items():
                kept = buffer.newer_than(cutoff)
                if kept:
                    fresh[key] = buffer.copy_from(kept)
            return fresh

        by_id = {k: c for k, c in self._by_id.items() if c.clicked_at >= cutoff}
        by_user = compact(self._by_user)
        by_ip = compact(self._by_ip)
        by_fingerprint = compact(self._by_fingerprint)
        by_tracker = {k: c for k, c in self._by_tracker.items() if c.clicked_at >= cutoff}

        removed = len(self._by_id) - len(by_id)
        self._by_id = by_id
        self._by_user = by_user
        self._by_ip = by_ip
        self._by_fingerprint = by_fingerprint
        self._by_tracker = by_tracker

        if removed:
            logger.info("Expired clicks swept", removed=removed, remaining=len(by_id))
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                logger.error("Click sweep failed", error=str(e))

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop"""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.info(
                "Click sweeper started", interval_seconds=self.sweep_interval_seconds
            )

    async def stop_sweeper(self) -> None:
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None
        logger.info("Click sweeper stopped")
