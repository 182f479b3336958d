"""
SQLAlchemy models for the Attribution Worker
"""

from .base import Base, BaseModel
from .smart_link import SmartLink
from .click import Click
from .sale import Sale
from .attribution import Attribution
from .social_post import SocialPost
from .content_attribution import ContentAttribution

__all__ = [
    "Base",
    "BaseModel",
    "SmartLink",
    "Click",
    "Sale",
    "Attribution",
    "SocialPost",
    "ContentAttribution",
]
