"""
Main application for the Attribution Worker
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from attribution_worker.api.v1.attribution import router as attribution_router
from attribution_worker.core.config import settings, validate_configuration
from attribution_worker.core.database import close_engine, create_all_tables
from attribution_worker.core.logging import (
    get_logger,
    logging_config_from_settings,
    setup_logging,
)
from attribution_worker.core.redis import RedisClient, wait_for_redis_ready
from attribution_worker.domains.attribution.models import AttributionOptions
from attribution_worker.domains.attribution.services import (
    AttributionEngine,
    AttributionService,
    ContentAttributionEngine,
    ContentAttributionService,
    SqlAlchemyAttributionStore,
)
from attribution_worker.shared.helpers import now_utc

logger = get_logger(__name__)


async def initialize_services(app: FastAPI) -> None:
    """Build the engine and its collaborators and attach them to app.state"""
    validate_configuration(settings)

    if settings.database.DATABASE_CREATE_TABLES:
        if await create_all_tables():
            logger.info("✅ Database tables verified/created")
        else:
            logger.warning("⚠️ Table creation failed, Tier 3 lookups may fail")

    redis_client = None
    if settings.redis.REDIS_ENABLED:
        redis_client = RedisClient()
        if not await wait_for_redis_ready(redis_client):
            logger.warning("⚠️ Starting with a degraded click cache")

    engine = AttributionEngine.from_settings(settings, redis_client=redis_client)
    store = SqlAlchemyAttributionStore()
    service = AttributionService(
        engine=engine,
        store=store,
        default_options=AttributionOptions(
            window_minutes=settings.attribution.ATTRIBUTION_WINDOW_MINUTES,
            min_confidence=settings.attribution.MIN_CONFIDENCE,
        ),
        store_timeout_seconds=settings.attribution.STORE_TIMEOUT_SECONDS,
        materialize_inferred_clicks=settings.attribution.MATERIALIZE_INFERRED_CLICKS,
    )

    app.state.redis_client = redis_client
    app.state.attribution_engine = engine
    app.state.attribution_service = service
    content_engine = ContentAttributionEngine()
    app.state.content_engine = content_engine
    app.state.content_service = ContentAttributionService(content_engine)

    engine.start()
    logger.info("✅ Attribution engine started")


async def cleanup_services(app: FastAPI) -> None:
    engine = getattr(app.state, "attribution_engine", None)
    if engine is not None:
        await engine.stop()

    redis_client = getattr(app.state, "redis_client", None)
    if redis_client is not None:
        await redis_client.disconnect()

    await close_engine()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    setup_logging(logging_config_from_settings())
    try:
        await initialize_services(app)
    except Exception as e:
        logger.error("❌ Failed to initialize services", error=str(e))
        raise

    yield

    try:
        await cleanup_services(app)
    except Exception as e:
        logger.error("Failed to cleanup services", error=str(e))


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Adaptive revenue attribution for creator links and content",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.include_router(attribution_router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    service = getattr(app.state, "attribution_service", None)
    return {
        "status": "healthy" if service is not None else "starting",
        "timestamp": now_utc().isoformat(),
        "version": settings.VERSION,
        "redis_enabled": settings.redis.REDIS_ENABLED,
    }
