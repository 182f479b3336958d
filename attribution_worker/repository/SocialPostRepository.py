"""
Social Post Repository
"""

import logging
from datetime import datetime
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attribution_worker.core.database.models import SocialPost

logger = logging.getLogger(__name__)


class SocialPostRepository:
    """Repository for SocialPost operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_recent_by_user(
        self, user_id: str, start: datetime, end: datetime, limit: int = 200
    ) -> List[SocialPost]:
        """A creator's posts published inside [start, end], newest first."""
        query = (
            select(SocialPost)
            .where(
                SocialPost.user_id == user_id,
                SocialPost.posted_at >= start,
                SocialPost.posted_at <= end,
            )
            .order_by(SocialPost.posted_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
