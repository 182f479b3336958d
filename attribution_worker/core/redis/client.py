"""
Redis client for the Attribution Worker
"""

import asyncio
import time
from typing import Optional, Any, List, Sequence, Tuple
from redis.asyncio import Redis

from attribution_worker.core.config.settings import settings
from attribution_worker.core.exceptions import RedisConnectionError, RedisTimeoutError
from attribution_worker.core.logging import get_logger
from .models import RedisConnectionConfig, RedisMetrics

logger = get_logger(__name__)

# (operation name, positional args) queued into one pipeline
PipelineCommand = Tuple[str, Sequence[Any]]


class RedisClient:
    """Async Redis client with lazy connection, timeouts and operation metrics"""

    def __init__(
        self,
        config: Optional[RedisConnectionConfig] = None,
        client: Optional[Redis] = None,
    ):
        self.config = config or RedisConnectionConfig(
            host=settings.redis.REDIS_HOST,
            port=settings.redis.REDIS_PORT,
            password=settings.redis.REDIS_PASSWORD or None,
            db=settings.redis.REDIS_DB,
            tls=settings.redis.REDIS_TLS,
            operation_timeout=settings.attribution.CACHE_TIMEOUT_SECONDS,
        )
        self._client: Optional[Redis] = client
        self._connection_time: Optional[float] = time.time() if client else None
        self._metrics = RedisMetrics(last_reset=str(time.time()))
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Establish Redis connection"""
        async with self._lock:
            if self._client is not None:
                return

            try:
                logger.info(
                    "Establishing Redis connection",
                    host=self.config.host,
                    port=self.config.port,
                )

                redis_config = {
                    "host": self.config.host,
                    "port": self.config.port,
                    "password": self.config.password,
                    "db": self.config.db,
                    "decode_responses": self.config.decode_responses,
                    "socket_connect_timeout": self.config.socket_connect_timeout,
                    "socket_timeout": self.config.socket_timeout,
                    "socket_keepalive": self.config.socket_keepalive,
                    "retry_on_timeout": self.config.retry_on_timeout,
                    "health_check_interval": self.config.health_check_interval,
                }

                # TLS only applies to remote hosts
                if self.config.tls and self.config.host != "localhost":
                    redis_config["ssl"] = True
                    redis_config["ssl_cert_reqs"] = None

                client = Redis(**redis_config)
                await asyncio.wait_for(
                    client.ping(), timeout=self.config.socket_connect_timeout
                )

                self._client = client
                self._connection_time = time.time()
                logger.info("Redis connection established successfully")

            except asyncio.TimeoutError as e:
                self._metrics.connection_errors += 1
                logger.error(
                    "Redis connection timeout",
                    host=self.config.host,
                    port=self.config.port,
                )
                raise RedisTimeoutError(
                    message="Redis connection timeout",
                    operation="connect",
                    timeout=self.config.socket_connect_timeout,
                    cause=e,
                )

            except Exception as e:
                self._metrics.connection_errors += 1
                logger.error(
                    "Failed to connect to Redis",
                    host=self.config.host,
                    port=self.config.port,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise RedisConnectionError(
                    message=f"Failed to connect to Redis: {e}",
                    connection_details=self.config.to_dict(),
                    cause=e,
                )

    async def disconnect(self) -> None:
        """Close Redis connection"""
        async with self._lock:
            if self._client is None:
                return

            try:
                await self._client.aclose()
                logger.info("Redis connection closed")
            except Exception as e:
                logger.warning("Error closing Redis connection", error=str(e))
            finally:
                self._client = None
                self._connection_time = None

    async def get_client(self) -> Redis:
        """Get Redis client, creating connection if needed"""
        if self._client is None:
            await self.connect()
        return self._client

    def _record_success(self, operation: str, started: float) -> None:
        response_time = (time.time() - started) * 1000
        self._metrics.total_operations += 1
        self._metrics.successful_operations += 1
        self._metrics.average_response_time_ms = (
            self._metrics.average_response_time_ms
            * (self._metrics.total_operations - 1)
            + response_time
        ) / self._metrics.total_operations

        if response_time > 50:
            self._metrics.slow_operations_count += 1
            logger.warning(
                "Slow Redis operation detected",
                operation=operation,
                response_time_ms=round(response_time, 2),
            )

    def _record_failure(self) -> None:
        self._metrics.total_operations += 1
        self._metrics.failed_operations += 1

    async def execute_operation(self, operation: str, *args, **kwargs) -> Any:
        """Execute a Redis operation with timeout and metrics tracking"""
        started = time.time()

        try:
            client = await self.get_client()
            method = getattr(client, operation)
            result = await asyncio.wait_for(
                method(*args, **kwargs), timeout=self.config.operation_timeout
            )
            self._record_success(operation, started)
            return result

        except (RedisConnectionError, RedisTimeoutError):
            self._record_failure()
            raise

        except asyncio.TimeoutError as e:
            self._record_failure()
            raise RedisTimeoutError(
                message=f"Redis operation '{operation}' timed out",
                operation=operation,
                timeout=self.config.operation_timeout,
                cause=e,
            )

        except Exception as e:
            self._record_failure()
            raise RedisConnectionError(
                message=f"Redis operation '{operation}' failed",
                connection_details=self.config.to_dict(),
                cause=e,
            )

    async def execute_pipeline(self, commands: List[PipelineCommand]) -> List[Any]:
        """Queue several commands in one non-transactional pipeline round trip"""
        started = time.time()

        try:
            client = await self.get_client()
            pipe = client.pipeline(transaction=False)
            for operation, args in commands:
                getattr(pipe, operation)(*args)
            result = await asyncio.wait_for(
                pipe.execute(), timeout=self.config.operation_timeout
            )
            self._metrics.pipeline_operations += 1
            self._record_success("pipeline", started)
            return result

        except (RedisConnectionError, RedisTimeoutError):
            self._record_failure()
            raise

        except asyncio.TimeoutError as e:
            self._record_failure()
            raise RedisTimeoutError(
                message="Redis pipeline timed out",
                operation="pipeline",
                timeout=self.config.operation_timeout,
                cause=e,
            )

        except Exception as e:
            self._record_failure()
            raise RedisConnectionError(
                message="Redis pipeline failed",
                connection_details=self.config.to_dict(),
                cause=e,
            )

    async def get(self, key: str) -> Any:
        return await self.execute_operation("get", key)

    async def mget(self, keys: List[str]) -> List[Any]:
        if not keys:
            return []
        return await self.execute_operation("mget", keys)

    async def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        return await self.execute_operation("setex", key, ttl_seconds, value)

    async def ttl(self, key: str) -> int:
        return await self.execute_operation("ttl", key)

    async def lrange(self, key: str, start: int, end: int) -> List[Any]:
        return await self.execute_operation("lrange", key, start, end)

    async def count_keys(self, pattern: str) -> int:
        """Count keys matching a pattern using SCAN"""
        started = time.time()
        try:
            client = await self.get_client()
            total = 0
            async for _ in client.scan_iter(match=pattern, count=500):
                total += 1
            self._record_success("scan_iter", started)
            return total
        except (RedisConnectionError, RedisTimeoutError):
            self._record_failure()
            raise
        except Exception as e:
            self._record_failure()
            raise RedisConnectionError(
                message="Redis key scan failed",
                connection_details=self.config.to_dict(),
                cause=e,
            )

    def get_metrics(self) -> RedisMetrics:
        """Get Redis performance metrics"""
        return self._metrics
