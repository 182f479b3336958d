"""
Click model for SQLAlchemy

One visit to a tracked link, with the signals captured at redirect time.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from .base import BaseModel, UserMixin


class Click(BaseModel, UserMixin):
    """Click event on a smart link"""

    __tablename__ = "clicks"

    link_id = Column(
        "link_id", String(255), ForeignKey("smart_links.id"), nullable=False, index=True
    )
    platform = Column("platform", String(50), nullable=False, default="other")
    clicked_at = Column("clicked_at", TIMESTAMP(timezone=True), nullable=False)

    # Matching signals
    ip_address = Column("ip_address", String(64), nullable=True)
    fingerprint = Column("fingerprint", String(255), nullable=True)
    tracker_id = Column("tracker_id", String(255), nullable=True)
    country = Column("country", String(100), nullable=True)
    region = Column("region", String(100), nullable=True)
    city = Column("city", String(100), nullable=True)

    # Context
    user_agent = Column("user_agent", Text, nullable=True)
    referer = Column("referer", Text, nullable=True)
    utm_source = Column("utm_source", String(255), nullable=True)
    utm_medium = Column("utm_medium", String(255), nullable=True)
    utm_campaign = Column("utm_campaign", String(255), nullable=True)

    # Attribution state
    attributed = Column("attributed", Boolean, nullable=False, default=False)
    sale_id = Column("sale_id", String(255), nullable=True)
    inferred = Column("inferred", Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_clicks_user_id_clicked_at", "user_id", "clicked_at"),
        Index("ix_clicks_user_id_ip_address", "user_id", "ip_address"),
        Index("ix_clicks_user_id_country_city", "user_id", "country", "city"),
    )
