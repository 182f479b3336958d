"""
Sale Repository
"""

import logging
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attribution_worker.core.database.models import Sale

logger = logging.getLogger(__name__)


class SaleRepository:
    """Repository for Sale operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, sale_id: str) -> Optional[Sale]:
        query = select(Sale).where(Sale.id == sale_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
