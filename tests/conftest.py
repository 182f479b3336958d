"""
Shared fixtures: fixed clock, in-memory durable store and in-memory Redis
"""

import asyncio
import fnmatch
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from attribution_worker.core.exceptions import AttributionNotFoundError, AttributionStateError
from attribution_worker.core.redis import RedisClient, RedisConnectionConfig
from attribution_worker.domains.attribution.interfaces import IAttributionStore
from attribution_worker.domains.attribution.models import (
    AttributedContent,
    AttributionMode,
    AttributionRecord,
    AttributionStatus,
    ClickEvent,
    ContentPlatform,
    Engagement,
    LearningConfig,
    Project,
    ProjectSocialLink,
    RawContent,
    REVIEWED_STATUSES,
    SaleEvent,
    TrackedLink,
)
from attribution_worker.domains.attribution.services import (
    AdaptiveLearningModel,
    AttributionEngine,
    AttributionService,
    ClickEventStore,
    RedisClickCache,
)

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
USER_ID = "user_creator_1"


class FixedClock:
    """Callable clock that tests can move forward"""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


def make_link(link_id: str = "link_1", **overrides) -> TrackedLink:
    data = {
        "id": link_id,
        "user_id": USER_ID,
        "slug": f"slug-{link_id}",
        "original_url": "https://example.com/product",
        "platform": "twitter",
    }
    data.update(overrides)
    return TrackedLink(**data)


def make_click(click_id: str = "click_1", minutes_before: float = 10, **overrides) -> ClickEvent:
    data = {
        "id": click_id,
        "link_id": "link_1",
        "user_id": USER_ID,
        "platform": "twitter",
        "clicked_at": FIXED_NOW - timedelta(minutes=minutes_before),
    }
    data.update(overrides)
    return ClickEvent(**data)


def make_sale(sale_id: str = "sale_1", **overrides) -> SaleEvent:
    data = {
        "id": sale_id,
        "user_id": USER_ID,
        "amount": 4900,
        "currency": "usd",
        "created_at": FIXED_NOW,
    }
    data.update(overrides)
    return SaleEvent(**data)


def make_content(content_id: str = "post_1", minutes_before: float = 10, **overrides) -> AttributedContent:
    data = {
        "id": content_id,
        "user_id": USER_ID,
        "social_account_id": "twitter_acct_1",
        "platform": "twitter",
        "content": "New drop is live",
        "posted_at": FIXED_NOW - timedelta(minutes=minutes_before),
    }
    data.update(overrides)
    return AttributedContent(**data)


def make_project(
    mode: AttributionMode = AttributionMode.MENTIONS_ONLY,
    platform: ContentPlatform = ContentPlatform.TWITTER,
    **overrides,
) -> Project:
    data = {
        "id": "proj_wolf",
        "name": "Wolf Pack",
        "token_symbol": "WOLF",
        "hashtags": ["#howl"],
        "social_links": [
            ProjectSocialLink(
                id="link_wolf",
                project_id="proj_wolf",
                platform=platform,
                account_id="author_1",
                attribution_mode=mode,
            )
        ],
    }
    data.update(overrides)
    return Project(**data)


def make_raw(text: str = "", **overrides) -> RawContent:
    data = {
        "id": "content_1",
        "platform": ContentPlatform.TWITTER,
        "author_id": "author_1",
        "text": text,
        "url": "https://twitter.com/author_1/status/1",
        "posted_at": FIXED_NOW,
        "engagement": Engagement(likes=10, views=100),
    }
    data.update(overrides)
    return RawContent(**data)


class InMemoryAttributionStore(IAttributionStore):
    """Durable store double; returns copies so callers cannot mutate stored rows"""

    def __init__(self):
        self.links: Dict[str, TrackedLink] = {}
        self.clicks: Dict[str, ClickEvent] = {}
        self.sales: Dict[str, SaleEvent] = {}
        self.attributions: Dict[str, AttributionRecord] = {}
        self.contents: List[AttributedContent] = []
        self.fail_reads = False
        self.fail_attribution_writes = False
        self.calls: List[str] = []

    def _read(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_reads:
            raise ConnectionError("store unavailable")

    def add_link(self, link: TrackedLink) -> TrackedLink:
        self.links[link.id] = link
        return link

    def add_click(self, click: ClickEvent) -> ClickEvent:
        self.clicks[click.id] = click.model_copy(deep=True)
        return click

    def _window_clicks(self, user_id: str, start: datetime, end: datetime) -> List[ClickEvent]:
        clicks = [
            c
            for c in self.clicks.values()
            if c.user_id == user_id
            and start <= c.clicked_at <= end
            and not c.attributed
            and not c.inferred
        ]
        return sorted(clicks, key=lambda c: c.clicked_at, reverse=True)

    async def find_click(self, click_id: str) -> Optional[ClickEvent]:
        self._read("find_click")
        click = self.clicks.get(click_id)
        return click.model_copy(deep=True) if click else None

    async def find_link(self, link_id: str) -> Optional[TrackedLink]:
        self._read("find_link")
        link = self.links.get(link_id)
        return link.model_copy(deep=True) if link else None

    async def find_clicks_by_ip_within_window(
        self, user_id, ip_address, window_start, window_end, limit=1
    ) -> List[ClickEvent]:
        self._read("find_clicks_by_ip_within_window")
        clicks = [
            c for c in self._window_clicks(user_id, window_start, window_end)
            if c.ip_address == ip_address
        ]
        return [c.model_copy(deep=True) for c in clicks[:limit]]

    async def find_clicks_by_geo_within_window(
        self, user_id, country, city, window_start, window_end, limit=1
    ) -> List[ClickEvent]:
        self._read("find_clicks_by_geo_within_window")
        clicks = [
            c for c in self._window_clicks(user_id, window_start, window_end)
            if (c.country or "").lower() == country.lower()
            and (c.city or "").lower() == city.lower()
        ]
        return [c.model_copy(deep=True) for c in clicks[:limit]]

    async def mark_click_attributed(self, click_id: str, sale_id: str) -> bool:
        self.calls.append("mark_click_attributed")
        click = self.clicks.get(click_id)
        if click is None:
            return False
        return click.mark_attributed(sale_id)

    async def create_click(self, click: ClickEvent) -> ClickEvent:
        self.calls.append("create_click")
        self.clicks[click.id] = click.model_copy(deep=True)
        return click.model_copy(deep=True)

    async def find_sale_by_id(self, sale_id: str) -> Optional[SaleEvent]:
        self._read("find_sale_by_id")
        sale = self.sales.get(sale_id)
        return sale.model_copy(deep=True) if sale else None

    async def create_attribution(self, record: AttributionRecord) -> AttributionRecord:
        self.calls.append("create_attribution")
        if self.fail_attribution_writes:
            raise ConnectionError("write failed")
        if any(a.sale_id == record.sale_id for a in self.attributions.values()):
            raise ValueError(f"duplicate attribution for sale {record.sale_id}")
        self.attributions[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    async def find_attribution_by_sale_id(self, sale_id: str) -> Optional[AttributionRecord]:
        self._read("find_attribution_by_sale_id")
        for record in self.attributions.values():
            if record.sale_id == sale_id:
                return record.model_copy(deep=True)
        return None

    async def find_attribution_by_id(self, attribution_id: str) -> Optional[AttributionRecord]:
        self._read("find_attribution_by_id")
        record = self.attributions.get(attribution_id)
        return record.model_copy(deep=True) if record else None

    async def update_attribution_status(
        self, attribution_id: str, status: AttributionStatus
    ) -> AttributionRecord:
        self.calls.append("update_attribution_status")
        if self.fail_attribution_writes:
            raise ConnectionError("write failed")
        current = self.attributions.get(attribution_id)
        if current is None:
            raise AttributionNotFoundError(attribution_id)
        if current.status in REVIEWED_STATUSES:
            raise AttributionStateError(attribution_id, current.status.value, status.value)
        record = current.model_copy(update={"status": status})
        self.attributions[attribution_id] = record
        return record.model_copy(deep=True)

    async def find_recent_content(self, user_id, window_start, window_end) -> List[AttributedContent]:
        self._read("find_recent_content")
        return [
            c.model_copy(deep=True)
            for c in self.contents
            if c.user_id == user_id and window_start <= c.posted_at <= window_end
        ]

    async def create_synthetic_link(self, user_id: str) -> TrackedLink:
        self.calls.append("create_synthetic_link")
        slug = f"inferred-{user_id[:8]}"
        for link in self.links.values():
            if link.slug == slug:
                return link.model_copy(deep=True)
        link = TrackedLink(
            id=f"link_{slug}", user_id=user_id, slug=slug, active=False, inferred=True
        )
        self.links[link.id] = link
        return link.model_copy(deep=True)


class YieldingAttributionStore(InMemoryAttributionStore):
    """Store double whose reads suspend, as a networked store would"""

    async def find_click(self, click_id: str) -> Optional[ClickEvent]:
        await asyncio.sleep(0)
        return await super().find_click(click_id)

    async def find_link(self, link_id: str) -> Optional[TrackedLink]:
        await asyncio.sleep(0)
        return await super().find_link(link_id)

    async def find_attribution_by_id(self, attribution_id: str) -> Optional[AttributionRecord]:
        await asyncio.sleep(0)
        return await super().find_attribution_by_id(attribution_id)


class FakePipeline:
    """Queues commands and runs them against the FakeRedis on execute()"""

    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._queued: List[Any] = []

    def __getattr__(self, name: str):
        method = getattr(self._redis, name)

        def queue(*args, **kwargs):
            self._queued.append((method, args, kwargs))
            return self

        return queue

    async def execute(self) -> List[Any]:
        self._redis._check()
        results = []
        for method, args, kwargs in self._queued:
            results.append(await method(*args, **kwargs))
        self._queued = []
        return results


class FakeRedis:
    """Minimal async Redis double covering the commands the click cache uses"""

    def __init__(self):
        self.values: Dict[str, Any] = {}
        self.lists: Dict[str, List[str]] = {}
        self.ttls: Dict[str, int] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis down")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.values.get(key)

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        self._check()
        return [self.values.get(key) for key in keys]

    async def set(self, key: str, value: str) -> bool:
        self._check()
        self.values[key] = value
        return True

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check()
        self.values[key] = value
        self.ttls[key] = ttl
        return True

    async def lpush(self, key: str, *values: str) -> int:
        self._check()
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        self._check()
        if key in self.lists:
            self.lists[key] = self.lists[key][start : end + 1]
        return True

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        self._check()
        return list(self.lists.get(key, [])[start : end + 1])

    async def expire(self, key: str, ttl: int) -> bool:
        self._check()
        self.ttls[key] = ttl
        return True

    async def ttl(self, key: str) -> int:
        self._check()
        if key not in self.values and key not in self.lists:
            return -2
        return self.ttls.get(key, -1)

    async def scan_iter(self, match: str = "*", count: int = 100):
        self._check()
        for key in list(self.values) + list(self.lists):
            if fnmatch.fnmatch(key, match):
                yield key

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        return None


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryAttributionStore:
    store = InMemoryAttributionStore()
    store.add_link(make_link("link_1"))
    return store


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_client(fake_redis) -> RedisClient:
    return RedisClient(
        config=RedisConnectionConfig(host="localhost", operation_timeout=1.0),
        client=fake_redis,
    )


@pytest.fixture
def click_cache(redis_client) -> RedisClickCache:
    return RedisClickCache(redis_client, ttl_seconds=86400, window_minutes=1440)


@pytest.fixture
def click_store(clock) -> ClickEventStore:
    return ClickEventStore(window_minutes=1440, max_clicks_per_user=100, clock=clock)


@pytest.fixture
def model(clock) -> AdaptiveLearningModel:
    return AdaptiveLearningModel(LearningConfig(random_seed=7), clock=clock)


@pytest.fixture
def engine(click_store, model, click_cache) -> AttributionEngine:
    return AttributionEngine(click_store=click_store, model=model, click_cache=click_cache)


@pytest.fixture
def service(engine, store) -> AttributionService:
    return AttributionService(engine=engine, store=store, store_timeout_seconds=1.0)


async def record(service: AttributionService, store: InMemoryAttributionStore, click: ClickEvent):
    """Record a click the way the redirect path does: durable row plus indexes"""
    store.add_click(click)
    await service.record_click(click)
    return click
