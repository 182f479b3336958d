"""
Database module for the Attribution Worker

Uses SQLAlchemy async for all database operations.
"""

from .engine import get_engine, close_engine, check_engine_health, get_database_url
from .create_tables import create_all_tables
from .session import (
    get_session_factory,
    get_session_context,
    get_transaction_context,
    reset_session_factory,
)

__all__ = [
    "create_all_tables",
    "get_engine",
    "close_engine",
    "check_engine_health",
    "get_database_url",
    "get_session_factory",
    "get_session_context",
    "get_transaction_context",
    "reset_session_factory",
]
