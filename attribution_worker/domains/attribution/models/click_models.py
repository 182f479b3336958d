"""
Click and link models for the attribution engine
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from attribution_worker.shared.helpers import ensure_utc, now_utc


class Platform(str, Enum):
    """Source platform of a tracked link"""

    TWITTER = "twitter"
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    TWITCH = "twitch"
    NEWSLETTER = "newsletter"
    DISCORD = "discord"
    OTHER = "other"


class MatchStrategy(str, Enum):
    """Exact-match strategy, in strict priority order"""

    IP_EXACT = "ip_exact"
    TRACKER = "tracker"
    FINGERPRINT = "fingerprint"
    GEO = "geo"


class TrackedLink(BaseModel):
    """Smart link a click was made on"""

    id: str
    user_id: str
    slug: str
    original_url: str = ""
    platform: str = Platform.OTHER.value
    active: bool = True
    inferred: bool = False


class ClickEvent(BaseModel):
    """A single click on a tracked link"""

    id: str
    link_id: str
    user_id: str
    platform: str = Platform.OTHER.value
    clicked_at: datetime

    ip_address: Optional[str] = None
    fingerprint: Optional[str] = None
    tracker_id: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None

    user_agent: Optional[str] = None
    referer: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None

    attributed: bool = False
    sale_id: Optional[str] = None
    # Backdated placeholder for a probabilistic match; never matchable
    inferred: bool = False

    @field_validator("clicked_at")
    @classmethod
    def normalize_clicked_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_attribution(self) -> "ClickEvent":
        if self.attributed and not self.sale_id:
            raise ValueError("attributed click must reference a sale_id")
        return self

    def mark_attributed(self, sale_id: str) -> bool:
        """Flag the click as attributed; returns False if it already was"""
        if self.attributed:
            return False
        self.sale_id = sale_id
        self.attributed = True
        return True


class MatchingSignals(BaseModel):
    """Signals extracted from a sale used to find its click"""

    ip: Optional[str] = None
    tracker_id: Optional[str] = None
    fingerprint: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None

    def has_geo(self) -> bool:
        return bool(self.country and self.city)


class ClickMatch(BaseModel):
    """Candidate click annotated with its strategy score"""

    click: ClickEvent
    score: float
    strategy: MatchStrategy


class ClickStats(BaseModel):
    """In-process click index statistics"""

    total_clicks: int = 0
    unattributed_clicks: int = 0
    unique_users: int = 0
    unique_ips: int = 0


class CacheStats(BaseModel):
    """Distributed click cache statistics"""

    connected: bool
    total_keys: int = 0
    total_operations: int = 0
    failed_operations: int = 0
    average_response_time_ms: float = 0.0


class CachedClick(ClickEvent):
    """Click as serialized into the distributed cache"""

    cached_at: datetime = Field(default_factory=now_utc)
