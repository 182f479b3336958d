"""
Content attribution persistence and manual review
"""

from typing import Any, Callable, List, Optional

from attribution_worker.core.database import get_session_context, get_transaction_context
from attribution_worker.core.database.models import ContentAttribution
from attribution_worker.core.logging import get_logger
from attribution_worker.repository import ContentAttributionRepository
from ..models import (
    AttributionReason,
    ContentAttributionRecord,
    ContentAttributionStats,
    Engagement,
    Project,
    RawContent,
)
from .content_attribution_engine import ContentAttributionEngine

logger = get_logger(__name__)


def content_record_from_row(row: ContentAttribution) -> ContentAttributionRecord:
    return ContentAttributionRecord(
        id=row.id,
        project_id=row.project_id,
        social_account_id=row.social_account_id,
        content_id=row.content_id,
        content_type=row.content_type,
        content_url=row.content_url,
        content_text=row.content_text,
        posted_at=row.posted_at,
        reason=AttributionReason(row.reason),
        matched_keywords=list(row.matched_keywords or []),
        confidence=row.confidence,
        engagement=Engagement(**(row.engagement or {})),
        manually_adjusted=bool(row.manually_adjusted),
        adjusted_by=row.adjusted_by,
        adjustment_note=row.adjustment_note,
    )


class ContentAttributionService:
    """Runs the rule engine over ingested content and manages the review queue"""

    def __init__(
        self,
        engine: Optional[ContentAttributionEngine] = None,
        session_context: Callable[[], Any] = get_session_context,
        transaction_context: Callable[[], Any] = get_transaction_context,
        repository_factory: Callable[..., Any] = ContentAttributionRepository,
    ):
        self.engine = engine or ContentAttributionEngine()
        self.session_context = session_context
        self.transaction_context = transaction_context
        self.repository_factory = repository_factory

    def _repository(self, session):
        return self.repository_factory(
            session,
            display_threshold=self.engine.config.display_threshold,
            save_threshold=self.engine.config.save_threshold,
        )

    async def ingest_content(
        self, content: RawContent, projects: List[Project]
    ) -> List[ContentAttributionRecord]:
        """Attribute one content item and upsert a row per matched project"""
        result = self.engine.attribute_content(content, projects)
        if not result.attributed:
            return []

        stored = []
        async with self.transaction_context() as session:
            repository = self._repository(session)
            for match in result.matches:
                record = ContentAttributionEngine.to_content_attribution_record(
                    content, match, match.social_link_id
                )
                row = await repository.upsert(record)
                stored.append(content_record_from_row(row))

        logger.info(
            "Content attributions stored",
            content_id=content.id,
            projects=[r.project_id for r in stored],
        )
        return stored

    async def get_review_queue(
        self, project_id: Optional[str] = None, limit: int = 100
    ) -> List[ContentAttributionRecord]:
        async with self.session_context() as session:
            rows = await self._repository(session).get_manual_review_queue(project_id, limit)
            return [content_record_from_row(row) for row in rows]

    async def approve(
        self, content_attribution_id: str, reviewer: str, note: Optional[str] = None
    ) -> ContentAttributionRecord:
        async with self.transaction_context() as session:
            row = await self._repository(session).approve(content_attribution_id, reviewer, note)
            return content_record_from_row(row)

    async def reject(
        self, content_attribution_id: str, reviewer: str, note: Optional[str] = None
    ) -> ContentAttributionRecord:
        async with self.transaction_context() as session:
            row = await self._repository(session).reject(content_attribution_id, reviewer, note)
            return content_record_from_row(row)

    async def is_content_attributed(self, content_id: str) -> bool:
        async with self.session_context() as session:
            return await self._repository(session).is_content_attributed(content_id)

    async def get_stats(self, project_id: str) -> ContentAttributionStats:
        async with self.session_context() as session:
            return await self._repository(session).get_stats(project_id)
