"""
Redis health monitoring utilities
"""

import asyncio
import time

from attribution_worker.core.logging import get_logger
from attribution_worker.shared.helpers import now_utc
from .client import RedisClient
from .models import RedisHealthStatus

logger = get_logger(__name__)


async def check_redis_health(redis_client: RedisClient) -> RedisHealthStatus:
    """Check Redis connection health with detailed status"""
    start_time = time.time()

    try:
        await redis_client.execute_operation("ping")
        response_time = (time.time() - start_time) * 1000

        return RedisHealthStatus(
            is_healthy=True,
            connection_info={
                "host": redis_client.config.host,
                "port": redis_client.config.port,
                "db": redis_client.config.db,
                "tls_enabled": redis_client.config.tls,
            },
            last_check=now_utc().isoformat(),
            response_time_ms=response_time,
        )

    except Exception as e:
        response_time = (time.time() - start_time) * 1000
        logger.error(
            "Redis health check failed", error=str(e), response_time_ms=response_time
        )
        return RedisHealthStatus(
            is_healthy=False,
            connection_info={},
            last_check=now_utc().isoformat(),
            error_message=str(e),
            response_time_ms=response_time,
        )


async def wait_for_redis_ready(
    redis_client: RedisClient, max_attempts: int = 5, delay_seconds: float = 1.0
) -> bool:
    """Wait for Redis to be ready (useful for container startup)"""
    for attempt in range(max_attempts):
        health_status = await check_redis_health(redis_client)
        if health_status.is_healthy:
            logger.info("Redis is ready", attempt=attempt + 1)
            return True

        if attempt < max_attempts - 1:
            await asyncio.sleep(delay_seconds)

    logger.warning(
        "Redis did not become ready, click cache will run degraded",
        max_attempts=max_attempts,
    )
    return False
