"""
Base model class for SQLAlchemy models

Provides common functionality and base configuration for all models.
"""

import uuid
from typing import Any, Dict
from sqlalchemy import Column, String, func
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import declarative_base, declared_attr

# Create the declarative base
Base = declarative_base()


class TimestampMixin:
    """Mixin for models that need created_at and updated_at timestamps"""

    created_at = Column(
        "created_at",
        TIMESTAMP(timezone=True),
        default=func.current_timestamp(),
        nullable=False,
    )
    updated_at = Column(
        "updated_at",
        TIMESTAMP(timezone=True),
        default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )


class IDMixin:
    """Mixin for models that need a primary key ID"""

    @declared_attr
    def id(cls):
        return Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))


class UserMixin:
    """Mixin for models owned by a creator account"""

    user_id = Column("user_id", String(255), nullable=False, index=True)


class BaseModel(Base, IDMixin, TimestampMixin):
    """
    Base model class with common functionality.

    All models should inherit from this class to get:
    - Automatic ID generation
    - Created/updated timestamps
    - Common utility methods
    """

    __abstract__ = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert model instance to dictionary"""
        return {
            column.key: getattr(self, column.key)
            for column in self.__mapper__.column_attrs
        }

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """Update model instance from dictionary"""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
