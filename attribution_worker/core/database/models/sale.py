"""
Sale model for SQLAlchemy

Revenue event delivered by a payment-processor webhook.
"""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSON, TIMESTAMP
from .base import BaseModel, UserMixin


class Sale(BaseModel, UserMixin):
    """Sale event"""

    __tablename__ = "sales"

    amount = Column("amount", Integer, nullable=False)  # minor currency units
    currency = Column("currency", String(10), nullable=False, default="usd")
    status = Column("status", String(50), nullable=False, default="completed")

    customer_email = Column("customer_email", String(255), nullable=True)
    customer_name = Column("customer_name", String(255), nullable=True)
    customer_ip = Column("customer_ip", String(64), nullable=True)
    country = Column("country", String(100), nullable=True)
    region = Column("region", String(100), nullable=True)
    city = Column("city", String(100), nullable=True)
    tracker_id = Column("tracker_id", String(255), nullable=True)
    fingerprint = Column("fingerprint", String(255), nullable=True)

    product_name = Column("product_name", Text, nullable=True)
    occurred_at = Column(
        "occurred_at", TIMESTAMP(timezone=True), nullable=False, index=True
    )
    sale_metadata = Column("metadata", JSON, default=dict, nullable=False)
