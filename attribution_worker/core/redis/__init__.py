"""
Redis module for the Attribution Worker
"""

from .client import RedisClient
from .models import RedisConnectionConfig, RedisHealthStatus, RedisMetrics
from .health import check_redis_health, wait_for_redis_ready

__all__ = [
    "RedisClient",
    "RedisConnectionConfig",
    "RedisHealthStatus",
    "RedisMetrics",
    "check_redis_health",
    "wait_for_redis_ready",
]
