"""
Redis models and configuration classes
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from pydantic import BaseModel


@dataclass
class RedisConnectionConfig:
    """Redis connection configuration"""

    host: str
    port: int = 6379
    password: Optional[str] = None
    db: int = 0
    tls: bool = False
    decode_responses: bool = True
    socket_connect_timeout: float = 5.0
    socket_timeout: float = 5.0
    socket_keepalive: bool = True
    retry_on_timeout: bool = True
    health_check_interval: int = 30
    operation_timeout: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, masking the password"""
        return {
            "host": self.host,
            "port": self.port,
            "password": "***" if self.password else None,
            "db": self.db,
            "tls": self.tls,
            "socket_connect_timeout": self.socket_connect_timeout,
            "socket_timeout": self.socket_timeout,
            "operation_timeout": self.operation_timeout,
        }


class RedisHealthStatus(BaseModel):
    """Redis health status"""

    is_healthy: bool
    connection_info: Dict[str, Any]
    last_check: str
    error_message: Optional[str] = None
    response_time_ms: Optional[float] = None


class RedisMetrics(BaseModel):
    """Redis performance metrics"""

    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    average_response_time_ms: float = 0.0
    slow_operations_count: int = 0
    connection_errors: int = 0
    pipeline_operations: int = 0
    last_reset: str
