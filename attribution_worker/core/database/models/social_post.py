"""
Social post model for SQLAlchemy

Creator content collected from social platforms.
"""

from sqlalchemy import Column, Float, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSON, TIMESTAMP
from .base import BaseModel, UserMixin


class SocialPost(BaseModel, UserMixin):
    """Social content item with engagement and audience snapshot"""

    __tablename__ = "social_posts"

    social_account_id = Column("social_account_id", String(255), nullable=False)
    platform = Column("platform", String(50), nullable=True)
    platform_post_id = Column("platform_post_id", String(255), nullable=False)
    content = Column("content", Text, nullable=True)
    url = Column("url", Text, nullable=True)

    likes = Column("likes", Integer, nullable=False, default=0)
    comments = Column("comments", Integer, nullable=False, default=0)
    shares = Column("shares", Integer, nullable=False, default=0)
    views = Column("views", Integer, nullable=False, default=0)
    sentiment_score = Column("sentiment_score", Float, nullable=True)
    audience_breakdown = Column("audience_breakdown", JSON, default=list, nullable=False)

    posted_at = Column("posted_at", TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_social_posts_user_id_posted_at", "user_id", "posted_at"),
    )
