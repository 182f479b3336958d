"""
SQLAlchemy implementation of the durable attribution store
"""

from datetime import datetime
from typing import Any, Callable, List, Optional

from attribution_worker.core.database import get_session_context, get_transaction_context
from attribution_worker.core.exceptions import AttributionNotFoundError, AttributionStateError
from attribution_worker.core.database.models import (
    Attribution,
    Click,
    Sale,
    SmartLink,
    SocialPost,
)
from attribution_worker.core.logging import get_logger
from attribution_worker.repository import (
    AttributionRepository,
    ClickRepository,
    SaleRepository,
    SmartLinkRepository,
    SocialPostRepository,
)
from attribution_worker.shared.constants.attribution import INFERRED_LINK_SLUG_PREFIX
from ..interfaces import IAttributionStore
from ..models import (
    AttributedContent,
    AttributionRecord,
    AttributionStatus,
    ClickEvent,
    REVIEWED_STATUSES,
    SaleEvent,
    TrackedLink,
)

logger = get_logger(__name__)


def click_from_row(row: Click) -> ClickEvent:
    return ClickEvent(
        id=row.id,
        link_id=row.link_id,
        user_id=row.user_id,
        platform=row.platform or "other",
        clicked_at=row.clicked_at,
        ip_address=row.ip_address,
        fingerprint=row.fingerprint,
        tracker_id=row.tracker_id,
        country=row.country,
        region=row.region,
        city=row.city,
        user_agent=row.user_agent,
        referer=row.referer,
        utm_source=row.utm_source,
        utm_medium=row.utm_medium,
        utm_campaign=row.utm_campaign,
        attributed=bool(row.attributed),
        sale_id=row.sale_id,
        inferred=bool(row.inferred),
    )


def link_from_row(row: SmartLink) -> TrackedLink:
    return TrackedLink(
        id=row.id,
        user_id=row.user_id,
        slug=row.slug,
        original_url=row.original_url or "",
        platform=row.platform or "other",
        active=bool(row.active),
        inferred=bool(row.inferred),
    )


def sale_from_row(row: Sale) -> SaleEvent:
    return SaleEvent(
        id=row.id,
        user_id=row.user_id,
        amount=row.amount,
        currency=row.currency,
        status=row.status,
        customer_email=row.customer_email,
        customer_name=row.customer_name,
        customer_ip=row.customer_ip,
        country=row.country,
        region=row.region,
        city=row.city,
        tracker_id=row.tracker_id,
        fingerprint=row.fingerprint,
        product_name=row.product_name,
        created_at=row.occurred_at,
        metadata=row.sale_metadata or {},
    )


def attribution_from_row(row: Attribution) -> AttributionRecord:
    return AttributionRecord(
        id=row.id,
        user_id=row.user_id,
        sale_id=row.sale_id,
        click_id=row.click_id,
        link_id=row.link_id,
        content_id=row.content_id,
        confidence_score=row.confidence_score,
        status=AttributionStatus(row.status),
        time_delta_minutes=row.time_delta_minutes,
        matched_by=row.matched_by,
        revenue_share=row.revenue_share,
        created_at=row.created_at,
    )


def content_from_row(row: SocialPost) -> AttributedContent:
    return AttributedContent(
        id=row.id,
        user_id=row.user_id,
        social_account_id=row.social_account_id,
        platform=row.platform,
        content=row.content,
        url=row.url,
        posted_at=row.posted_at,
        likes=row.likes or 0,
        comments=row.comments or 0,
        shares=row.shares or 0,
        views=row.views or 0,
        sentiment_score=row.sentiment_score,
        audience_breakdown=row.audience_breakdown or [],
    )


class SqlAlchemyAttributionStore(IAttributionStore):
    """Tier 3 store over PostgreSQL through the async SQLAlchemy session factories"""

    def __init__(
        self,
        session_context: Callable[[], Any] = get_session_context,
        transaction_context: Callable[[], Any] = get_transaction_context,
    ):
        self.session_context = session_context
        self.transaction_context = transaction_context

    async def find_click(self, click_id: str) -> Optional[ClickEvent]:
        async with self.session_context() as session:
            row = await ClickRepository(session).get_by_id(click_id)
            return click_from_row(row) if row else None

    async def find_link(self, link_id: str) -> Optional[TrackedLink]:
        async with self.session_context() as session:
            row = await SmartLinkRepository(session).get_by_id(link_id)
            return link_from_row(row) if row else None

    async def find_clicks_by_ip_within_window(
        self,
        user_id: str,
        ip_address: str,
        window_start: datetime,
        window_end: datetime,
        limit: int = 1,
    ) -> List[ClickEvent]:
        async with self.session_context() as session:
            rows = await ClickRepository(session).find_by_ip_within_window(
                user_id, ip_address, window_start, window_end, limit
            )
            return [click_from_row(row) for row in rows]

    async def find_clicks_by_geo_within_window(
        self,
        user_id: str,
        country: str,
        city: str,
        window_start: datetime,
        window_end: datetime,
        limit: int = 1,
    ) -> List[ClickEvent]:
        async with self.session_context() as session:
            rows = await ClickRepository(session).find_by_geo_within_window(
                user_id, country, city, window_start, window_end, limit
            )
            return [click_from_row(row) for row in rows]

    async def mark_click_attributed(self, click_id: str, sale_id: str) -> bool:
        async with self.transaction_context() as session:
            return await ClickRepository(session).mark_attributed(click_id, sale_id)

    async def create_click(self, click: ClickEvent) -> ClickEvent:
        async with self.transaction_context() as session:
            row = Click(**click.model_dump())
            await ClickRepository(session).create(row)
            return click_from_row(row)

    async def find_sale_by_id(self, sale_id: str) -> Optional[SaleEvent]:
        async with self.session_context() as session:
            row = await SaleRepository(session).get_by_id(sale_id)
            return sale_from_row(row) if row else None

    async def create_attribution(self, record: AttributionRecord) -> AttributionRecord:
        async with self.transaction_context() as session:
            row = Attribution(
                id=record.id,
                user_id=record.user_id,
                sale_id=record.sale_id,
                click_id=record.click_id,
                link_id=record.link_id,
                content_id=record.content_id,
                confidence_score=record.confidence_score,
                status=record.status.value,
                time_delta_minutes=record.time_delta_minutes,
                matched_by=record.matched_by.model_dump(mode="json"),
                revenue_share=record.revenue_share,
                created_at=record.created_at,
            )
            await AttributionRepository(session).create(row)
            return attribution_from_row(row)

    async def find_attribution_by_sale_id(self, sale_id: str) -> Optional[AttributionRecord]:
        async with self.session_context() as session:
            row = await AttributionRepository(session).get_by_sale_id(sale_id)
            return attribution_from_row(row) if row else None

    async def find_attribution_by_id(self, attribution_id: str) -> Optional[AttributionRecord]:
        async with self.session_context() as session:
            row = await AttributionRepository(session).get_by_id(attribution_id)
            return attribution_from_row(row) if row else None

    async def update_attribution_status(
        self, attribution_id: str, status: AttributionStatus
    ) -> AttributionRecord:
        async with self.transaction_context() as session:
            repository = AttributionRepository(session)
            changed = await repository.update_status(
                attribution_id, status.value, [s.value for s in REVIEWED_STATUSES]
            )
            row = await repository.get_by_id(attribution_id)
            if row is None:
                raise AttributionNotFoundError(attribution_id)
            if not changed:
                raise AttributionStateError(attribution_id, row.status, status.value)
            return attribution_from_row(row)

    async def find_recent_content(
        self, user_id: str, window_start: datetime, window_end: datetime
    ) -> List[AttributedContent]:
        async with self.session_context() as session:
            rows = await SocialPostRepository(session).get_recent_by_user(
                user_id, window_start, window_end
            )

        contents = []
        for row in rows:
            try:
                contents.append(content_from_row(row))
            except ValueError as e:
                logger.warning("Skipping malformed social post", post_id=row.id, error=str(e))
        return contents

    async def create_synthetic_link(self, user_id: str) -> TrackedLink:
        slug = f"{INFERRED_LINK_SLUG_PREFIX}{user_id[:8]}"
        async with self.transaction_context() as session:
            row = await SmartLinkRepository(session).get_or_create_inferred(user_id, slug)
            return link_from_row(row)
