"""
Smart link model for SQLAlchemy

A tracked redirect link owned by a creator.
"""

from sqlalchemy import Boolean, Column, String, Text
from .base import BaseModel, UserMixin


class SmartLink(BaseModel, UserMixin):
    """Tracked link; inferred links back probabilistic matches and are never active"""

    __tablename__ = "smart_links"

    slug = Column("slug", String(255), nullable=False, unique=True)
    original_url = Column("original_url", Text, nullable=False, default="")
    platform = Column("platform", String(50), nullable=False, default="other")
    active = Column("active", Boolean, nullable=False, default=True)
    inferred = Column("inferred", Boolean, nullable=False, default=False)
    notes = Column("notes", Text, nullable=True)
