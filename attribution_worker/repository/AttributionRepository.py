"""
Attribution Repository

Repository for attributions table operations.
"""

import logging
from typing import List, Optional, Sequence
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from attribution_worker.core.database.models import Attribution

logger = logging.getLogger(__name__)


class AttributionRepository:
    """Repository for Attribution operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, attribution_id: str) -> Optional[Attribution]:
        """Get attribution by ID."""
        query = select(Attribution).where(Attribution.id == attribution_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_sale_id(self, sale_id: str) -> Optional[Attribution]:
        """Get the attribution of a sale; sale_id is unique."""
        query = select(Attribution).where(Attribution.sale_id == sale_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_user(
        self, user_id: str, status: Optional[str] = None, limit: int = 100
    ) -> List[Attribution]:
        query = select(Attribution).where(Attribution.user_id == user_id)
        if status:
            query = query.where(Attribution.status == status)
        query = query.order_by(Attribution.created_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(self, attribution: Attribution) -> Attribution:
        """Create a new attribution; raises IntegrityError on a duplicate sale."""
        self.session.add(attribution)
        await self.session.flush()
        return attribution

    async def update_status(
        self, attribution_id: str, status: str, exclude_statuses: Sequence[str] = ()
    ) -> bool:
        """Set the status unless it is already one of exclude_statuses; True when a row changed."""
        query = update(Attribution).where(Attribution.id == attribution_id)
        if exclude_statuses:
            query = query.where(Attribution.status.notin_(list(exclude_statuses)))
        result = await self.session.execute(query.values(status=status))
        return result.rowcount > 0
