"""
Click Repository

Repository for clicks table operations, including the Tier 3 window lookups.
"""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from attribution_worker.core.database.models import Click

logger = logging.getLogger(__name__)


class ClickRepository:
    """Repository for Click operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, click_id: str) -> Optional[Click]:
        """Get a click by ID."""
        query = select(Click).where(Click.id == click_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    def _window_query(self, user_id: str, start: datetime, end: datetime):
        return select(Click).where(
            Click.user_id == user_id,
            Click.clicked_at >= start,
            Click.clicked_at <= end,
            Click.attributed.is_(False),
            Click.inferred.is_(False),
        )

    async def find_by_ip_within_window(
        self, user_id: str, ip_address: str, start: datetime, end: datetime, limit: int = 1
    ) -> List[Click]:
        """Unattributed clicks from one IP inside the window, newest first."""
        query = (
            self._window_query(user_id, start, end)
            .where(Click.ip_address == ip_address)
            .order_by(Click.clicked_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_by_geo_within_window(
        self,
        user_id: str,
        country: str,
        city: str,
        start: datetime,
        end: datetime,
        limit: int = 1,
    ) -> List[Click]:
        """Unattributed clicks from one country and city inside the window, newest first."""
        query = (
            self._window_query(user_id, start, end)
            .where(
                func.lower(Click.country) == country.lower(),
                func.lower(Click.city) == city.lower(),
            )
            .order_by(Click.clicked_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_attributed(self, click_id: str, sale_id: str) -> bool:
        """Flag a click as attributed; False when missing or already attributed."""
        query = (
            update(Click)
            .where(Click.id == click_id, Click.attributed.is_(False))
            .values(attributed=True, sale_id=sale_id)
        )
        result = await self.session.execute(query)
        return result.rowcount > 0

    async def create(self, click: Click) -> Click:
        """Create a new click."""
        self.session.add(click)
        await self.session.flush()
        return click
