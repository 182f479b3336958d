"""
Sale and attribution models for the attribution engine
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from attribution_worker.shared.constants.attribution import (
    DEFAULT_ATTRIBUTION_WINDOW_MINUTES,
    DEFAULT_MIN_CONFIDENCE,
)
from attribution_worker.shared.helpers import ensure_utc, now_utc
from .click_models import ClickEvent, MatchStrategy, TrackedLink


class AttributionStatus(str, Enum):
    """Lifecycle status of an attribution"""

    PENDING = "PENDING"
    MATCHED = "MATCHED"
    UNCERTAIN = "UNCERTAIN"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


# Terminal statuses set by human review
REVIEWED_STATUSES = (AttributionStatus.CONFIRMED, AttributionStatus.REJECTED)


class MatchType(str, Enum):
    """Strongest signal behind an attribution"""

    IP = "ip"
    TRACKER = "tracker"
    FINGERPRINT = "fingerprint"
    GEO = "geo"
    PROBABILISTIC = "probabilistic"
    NONE = "none"


class ResolutionTier(str, Enum):
    """Lookup tier that resolved an exact match"""

    ENGINE = "engine"
    REDIS = "redis"
    DATABASE = "database"


class SaleEvent(BaseModel):
    """Revenue event from a payment processor"""

    id: str
    user_id: str
    amount: int
    currency: str = "usd"
    status: str = "completed"

    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_ip: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None

    # Tracking signals pulled from processor metadata by the webhook layer
    tracker_id: Optional[str] = None
    fingerprint: Optional[str] = None

    product_name: Optional[str] = None
    created_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ConfidenceFactors(BaseModel):
    """Which signals matched between a click and a sale"""

    ip_match: bool = False
    tracker_match: bool = False
    fingerprint_match: bool = False
    geo_match: bool = False
    time_window_minutes: float = 0.0

    @property
    def matched_signals(self) -> List[str]:
        signals = []
        if self.ip_match:
            signals.append("ip")
        if self.tracker_match:
            signals.append("tracker")
        if self.fingerprint_match:
            signals.append("fingerprint")
        if self.geo_match:
            signals.append("geo")
        return signals


class ExactMatch(BaseModel):
    """Click resolved by the tiered matching resolver"""

    click: ClickEvent
    link: TrackedLink
    tier: ResolutionTier
    strategy: MatchStrategy
    score: float


class ExactMatchEvidence(BaseModel):
    """Match metadata for an attribution backed by a real click"""

    kind: Literal["exact"] = "exact"
    match_type: MatchType
    tier: ResolutionTier
    strategy: MatchStrategy
    provisional_score: float
    ip_match: bool = False
    tracker_match: bool = False
    fingerprint_match: bool = False
    geo_match: bool = False
    signals: List[str] = Field(default_factory=list)
    time_window_minutes: int = 0


class ProbabilisticMatchEvidence(BaseModel):
    """Match metadata for an attribution inferred from content"""

    kind: Literal["probabilistic"] = "probabilistic"
    match_type: MatchType = MatchType.PROBABILISTIC
    content_id: str
    platform: str
    time_decay: float
    geo_score: float
    sentiment_score: float
    weights_version: str
    inferred_click_id: Optional[str] = None


MatchEvidence = Annotated[
    Union[ExactMatchEvidence, ProbabilisticMatchEvidence],
    Field(discriminator="kind"),
]


class AttributionRecord(BaseModel):
    """Resolved link between a sale and at most one click or content item"""

    id: str
    user_id: str
    sale_id: str
    click_id: Optional[str] = None
    link_id: Optional[str] = None
    content_id: Optional[str] = None
    confidence_score: float = Field(ge=0.0, le=1.0)
    status: AttributionStatus
    time_delta_minutes: Optional[int] = None
    matched_by: MatchEvidence
    revenue_share: float = 1.0
    created_at: datetime = Field(default_factory=now_utc)

    @property
    def match_type(self) -> MatchType:
        return self.matched_by.match_type

    @property
    def is_probabilistic(self) -> bool:
        return isinstance(self.matched_by, ProbabilisticMatchEvidence)


class AttributionOptions(BaseModel):
    """Per-call attribution options"""

    window_minutes: int = Field(default=DEFAULT_ATTRIBUTION_WINDOW_MINUTES, gt=0)
    min_confidence: float = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0)


class AttributionResult(BaseModel):
    """Outcome of attributing one sale"""

    attributed: bool
    confidence: float
    match_type: MatchType
    attribution: Optional[AttributionRecord] = None
    matched_click: Optional[ClickEvent] = None
    matched_link: Optional[TrackedLink] = None

    @classmethod
    def unattributed(
        cls, confidence: float = 0.0, match_type: MatchType = MatchType.NONE
    ) -> "AttributionResult":
        return cls(attributed=False, confidence=confidence, match_type=match_type)
