"""
Attribution model for SQLAlchemy

Resolved link between a sale and at most one click or content item.
"""

from sqlalchemy import Column, Float, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSON
from .base import BaseModel, UserMixin


class Attribution(BaseModel, UserMixin):
    """Sale attribution; exactly one per sale"""

    __tablename__ = "attributions"

    sale_id = Column("sale_id", String(255), nullable=False, unique=True)
    click_id = Column("click_id", String(255), nullable=True, index=True)
    link_id = Column("link_id", String(255), nullable=True, index=True)
    content_id = Column("content_id", String(255), nullable=True)

    confidence_score = Column("confidence_score", Float, nullable=False)
    status = Column("status", String(20), nullable=False, index=True)
    time_delta_minutes = Column("time_delta_minutes", Integer, nullable=True)
    matched_by = Column("matched_by", JSON, default=dict, nullable=False)
    revenue_share = Column("revenue_share", Float, nullable=False, default=1.0)

    __table_args__ = (
        Index("ix_attributions_user_id_status", "user_id", "status"),
    )
