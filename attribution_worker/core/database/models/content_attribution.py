"""
Content attribution model for SQLAlchemy

Deterministic link between a social post and a creator project.
"""

from sqlalchemy import Boolean, Column, Float, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSON, TIMESTAMP
from .base import BaseModel


class ContentAttribution(BaseModel):
    """Content to project attribution, upserted on (project_id, content_id)"""

    __tablename__ = "content_attributions"

    project_id = Column("project_id", String(255), nullable=False, index=True)
    social_account_id = Column("social_account_id", String(255), nullable=False)

    content_id = Column("content_id", String(255), nullable=False)
    content_type = Column("content_type", String(50), nullable=False)
    content_url = Column("content_url", Text, nullable=True)
    content_text = Column("content_text", Text, nullable=True)
    posted_at = Column("posted_at", TIMESTAMP(timezone=True), nullable=False)

    reason = Column("reason", String(50), nullable=False)
    matched_keywords = Column("matched_keywords", JSON, default=list, nullable=False)
    confidence = Column("confidence", Float, nullable=False)
    engagement = Column("engagement", JSON, default=dict, nullable=False)

    manually_adjusted = Column("manually_adjusted", Boolean, nullable=False, default=False)
    adjusted_by = Column("adjusted_by", String(255), nullable=True)
    adjustment_note = Column("adjustment_note", Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "project_id", "content_id", name="uq_content_attributions_project_content"
        ),
        Index("ix_content_attributions_confidence", "confidence"),
    )
