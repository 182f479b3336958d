"""
Smart Link Repository

Repository for smart_links table operations.
"""

import logging
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attribution_worker.core.database.models import SmartLink

logger = logging.getLogger(__name__)


class SmartLinkRepository:
    """Repository for SmartLink operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, link_id: str) -> Optional[SmartLink]:
        """Get a link by ID."""
        query = select(SmartLink).where(SmartLink.id == link_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Optional[SmartLink]:
        query = select(SmartLink).where(SmartLink.slug == slug)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create_inferred(self, user_id: str, slug: str) -> SmartLink:
        """Get the creator's placeholder link for inferred clicks, creating it once."""
        link = await self.get_by_slug(slug)
        if link is not None:
            return link

        link = SmartLink(
            user_id=user_id,
            slug=slug,
            original_url="",
            platform="other",
            active=False,
            inferred=True,
            notes="Placeholder link for probabilistic attributions",
        )
        self.session.add(link)
        await self.session.flush()
        logger.info(f"Created inferred link {slug} for user {user_id}")
        return link
