"""
Create the attribution tables from SQLAlchemy models
"""

from attribution_worker.core.logging import get_logger
from .engine import get_engine
from .models import Base

logger = get_logger(__name__)


async def create_all_tables() -> bool:
    """Create missing tables; existing tables are left as they are"""
    try:
        engine = await get_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        return True

    except Exception as e:
        error_msg = str(e).lower()
        if any(keyword in error_msg for keyword in ("already exists", "duplicate")):
            return True
        logger.error("❌ Failed to create tables", error=str(e))
        return False
