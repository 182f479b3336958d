"""
Content Attribution Repository

Persistence and manual review for content-to-project attributions.
"""

import logging
from typing import Any, List, Optional
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attribution_worker.core.database.models import ContentAttribution
from attribution_worker.core.exceptions import ContentAttributionNotFoundError
from attribution_worker.domains.attribution.models import (
    AttributionReason,
    ConfidenceLevel,
    ContentAttributionRecord,
    ContentAttributionStats,
)

logger = logging.getLogger(__name__)


class ContentAttributionRepository:
    """Repository for ContentAttribution operations."""

    def __init__(
        self,
        session: AsyncSession,
        display_threshold: float = ConfidenceLevel.HIGH,
        save_threshold: float = ConfidenceLevel.MEDIUM,
    ):
        self.session = session
        self.display_threshold = display_threshold
        self.save_threshold = save_threshold

    async def get_by_id(self, attribution_id: str) -> Optional[ContentAttribution]:
        query = select(ContentAttribution).where(ContentAttribution.id == attribution_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_project_and_content(
        self, project_id: str, content_id: str
    ) -> Optional[ContentAttribution]:
        query = select(ContentAttribution).where(
            ContentAttribution.project_id == project_id,
            ContentAttribution.content_id == content_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def upsert(self, record: ContentAttributionRecord) -> ContentAttribution:
        """
        Insert a content attribution, or refresh engagement on an existing one.

        Confidence and reason of an existing row are left untouched so that a
        manual review outcome survives re-ingestion.
        """
        existing = await self.get_by_project_and_content(record.project_id, record.content_id)
        engagement = record.engagement.model_dump()

        if existing is not None:
            existing.engagement = engagement
            await self.session.flush()
            return existing

        row = ContentAttribution(
            project_id=record.project_id,
            social_account_id=record.social_account_id,
            content_id=record.content_id,
            content_type=record.content_type,
            content_url=record.content_url,
            content_text=record.content_text,
            posted_at=record.posted_at,
            reason=record.reason.value,
            matched_keywords=list(record.matched_keywords),
            confidence=record.confidence,
            engagement=engagement,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_manual_review_queue(
        self, project_id: Optional[str] = None, limit: int = 100
    ) -> List[ContentAttribution]:
        """Attributions between the save and display thresholds awaiting review."""
        query = select(ContentAttribution).where(
            ContentAttribution.confidence >= self.save_threshold,
            ContentAttribution.confidence < self.display_threshold,
            ContentAttribution.manually_adjusted.is_(False),
        )
        if project_id:
            query = query.where(ContentAttribution.project_id == project_id)
        query = query.order_by(ContentAttribution.posted_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _review(
        self, attribution_id: str, confidence: float, reviewer: str, note: Optional[str]
    ) -> ContentAttribution:
        row = await self.get_by_id(attribution_id)
        if row is None:
            raise ContentAttributionNotFoundError(attribution_id)

        row.confidence = confidence
        row.reason = AttributionReason.MANUAL.value
        row.manually_adjusted = True
        row.adjusted_by = reviewer
        row.adjustment_note = note
        await self.session.flush()
        logger.info(f"Content attribution {attribution_id} reviewed by {reviewer}: {confidence}")
        return row

    async def approve(
        self, attribution_id: str, reviewer: str, note: Optional[str] = None
    ) -> ContentAttribution:
        return await self._review(attribution_id, ConfidenceLevel.CERTAIN, reviewer, note)

    async def reject(
        self, attribution_id: str, reviewer: str, note: Optional[str] = None
    ) -> ContentAttribution:
        return await self._review(attribution_id, ConfidenceLevel.NONE, reviewer, note)

    async def is_content_attributed(self, content_id: str) -> bool:
        """True when any project holds a displayable attribution for the content."""
        query = select(func.count(ContentAttribution.id)).where(
            ContentAttribution.content_id == content_id,
            ContentAttribution.confidence >= self.display_threshold,
        )
        result = await self.session.execute(query)
        return (result.scalar_one() or 0) > 0

    async def get_stats(self, project_id: str) -> ContentAttributionStats:
        def count_where(*conditions: Any):
            return func.count(ContentAttribution.id).filter(and_(*conditions))

        query = select(
            func.count(ContentAttribution.id),
            count_where(ContentAttribution.confidence >= self.display_threshold),
            count_where(
                ContentAttribution.confidence >= self.save_threshold,
                ContentAttribution.confidence < self.display_threshold,
                ContentAttribution.manually_adjusted.is_(False),
            ),
            count_where(ContentAttribution.manually_adjusted.is_(True)),
        ).where(ContentAttribution.project_id == project_id)
        result = await self.session.execute(query)
        total, displayed, pending, adjusted = result.one()
        return ContentAttributionStats(
            project_id=project_id,
            total=total or 0,
            displayed=displayed or 0,
            pending_review=pending or 0,
            manually_adjusted=adjusted or 0,
        )
