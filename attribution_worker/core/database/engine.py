"""
SQLAlchemy async engine configuration for the Attribution Worker
"""

import asyncio
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.pool import NullPool

from attribution_worker.core.config.settings import settings
from attribution_worker.core.exceptions import DatabaseConnectionError
from attribution_worker.core.logging import get_logger

logger = get_logger(__name__)

# Global engine instance
_engine: Optional[AsyncEngine] = None
_engine_lock = asyncio.Lock()


def get_database_url() -> str:
    """Get the database URL with proper async driver"""
    database_url = settings.database.DATABASE_URL

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)

    return database_url


def create_engine() -> AsyncEngine:
    """Create SQLAlchemy async engine"""
    database_url = get_database_url()

    return create_async_engine(
        database_url,
        echo=settings.database.SQLALCHEMY_ECHO,
        echo_pool=settings.database.SQLALCHEMY_ECHO_POOL,
        poolclass=NullPool,
        connect_args=(
            {
                "command_timeout": settings.DATABASE_QUERY_TIMEOUT,
                "server_settings": {"application_name": "attribution-worker"},
            }
            if "postgresql" in database_url
            else {}
        ),
    )


async def _health_check_engine(engine: AsyncEngine) -> bool:
    """Perform a health check on the engine"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.debug("Engine health check failed", error=str(e))
        return False


async def get_engine() -> AsyncEngine:
    """Get or create the async database engine"""
    global _engine

    if _engine is None:
        async with _engine_lock:
            if _engine is None:
                engine = create_engine()
                healthy = await asyncio.wait_for(
                    _health_check_engine(engine),
                    timeout=settings.DATABASE_CONNECT_TIMEOUT,
                )
                if not healthy:
                    await engine.dispose()
                    raise DatabaseConnectionError("Failed to create database engine")
                _engine = engine
                logger.info("Database engine created")

    return _engine


async def close_engine() -> None:
    """Close the database engine"""
    global _engine

    if _engine:
        try:
            await _engine.dispose()
        except Exception as e:
            logger.warning("Error disposing engine", error=str(e))
        finally:
            _engine = None


async def check_engine_health() -> bool:
    """Check if the database engine is healthy"""
    try:
        engine = await get_engine()
        return await asyncio.wait_for(_health_check_engine(engine), timeout=5)
    except Exception as e:
        logger.warning("Database engine health check failed", error=str(e))
        return False
