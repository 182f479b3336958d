"""
Social content models shared by the probabilistic and deterministic attribution paths
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from attribution_worker.shared.helpers import ensure_utc


class AudienceSlice(BaseModel):
    """Share of a content item's audience located in one city"""

    city: str
    country: Optional[str] = None
    percentage: float = Field(ge=0.0, le=1.0)


class AttributedContent(BaseModel):
    """A creator's social post considered as a probabilistic candidate"""

    id: str
    user_id: str
    social_account_id: str
    platform: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None
    posted_at: datetime
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0
    sentiment_score: Optional[float] = None
    audience_breakdown: List[AudienceSlice] = Field(default_factory=list)

    @field_validator("posted_at")
    @classmethod
    def normalize_posted_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ContentCorrelation(BaseModel):
    """Score of one content item against one sale"""

    content: AttributedContent
    platform: str
    score: float
    time_delta_minutes: float
    time_decay: float
    geo_score: float
    sentiment_score: float


# --- Deterministic content-to-project attribution ---


class ContentPlatform(str, Enum):
    TWITTER = "twitter"
    YOUTUBE = "youtube"
    TWITCH = "twitch"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    DISCORD = "discord"
    PUMPFUN = "pumpfun"
    ZORA = "zora"


class ContentType(str, Enum):
    POST = "post"
    TWEET = "tweet"
    VIDEO = "video"
    STREAM = "stream"
    CLIP = "clip"
    SHORT = "short"
    REEL = "reel"
    STORY = "story"
    MESSAGE = "message"


class AttributionMode(str, Enum):
    """How a project's linked account attributes its content"""

    BROADCAST = "broadcast"
    MENTIONS_ONLY = "mentions_only"
    PRIMARY = "primary"


class AttributionReason(str, Enum):
    CASHTAG = "cashtag"
    HASHTAG = "hashtag"
    BROADCAST = "broadcast"
    PUMPFUN_STREAM = "pumpfun_stream"
    ZORA_CREATOR_STREAM = "zora_creator_stream"
    ZORA_CONTENT_MATCH = "zora_content_match"
    NAME_MENTION = "name_mention"
    MANUAL = "manual"
    NONE = "none"


class ConfidenceLevel:
    """Discrete confidence tiers of the rule engine"""

    CERTAIN = 1.0
    VERY_HIGH = 0.9
    HIGH = 0.75
    MEDIUM = 0.5
    NONE = 0.0

    ALLOWED = (CERTAIN, VERY_HIGH, HIGH, MEDIUM, NONE)


class Engagement(BaseModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0


class RawContent(BaseModel):
    """Content item as delivered by the social ingestion collaborator"""

    id: str
    platform: ContentPlatform
    content_type: ContentType = ContentType.POST
    author_id: str
    author_handle: Optional[str] = None
    text: str = ""
    url: Optional[str] = None
    posted_at: datetime
    engagement: Engagement = Field(default_factory=Engagement)

    @field_validator("posted_at")
    @classmethod
    def normalize_posted_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ProjectSocialLink(BaseModel):
    """A social account linked to a project"""

    id: str
    project_id: str
    platform: ContentPlatform
    account_id: str
    attribution_mode: AttributionMode = AttributionMode.MENTIONS_ONLY


class Project(BaseModel):
    """Creator project that content can be attributed to"""

    id: str
    name: str
    token_symbol: Optional[str] = None
    hashtags: List[str] = Field(default_factory=list)
    social_links: List[ProjectSocialLink] = Field(default_factory=list)


class PlatformRule(BaseModel):
    auto_attribute_all: bool = False
    default_confidence: float = ConfidenceLevel.NONE
    requires_explicit_match: bool = True


def _default_platform_rules() -> Dict[ContentPlatform, PlatformRule]:
    explicit = PlatformRule(requires_explicit_match=True)
    return {
        ContentPlatform.PUMPFUN: PlatformRule(
            auto_attribute_all=True,
            default_confidence=ConfidenceLevel.CERTAIN,
            requires_explicit_match=False,
        ),
        ContentPlatform.ZORA: PlatformRule(
            auto_attribute_all=True,
            default_confidence=ConfidenceLevel.CERTAIN,
            requires_explicit_match=False,
        ),
        ContentPlatform.TWITTER: explicit,
        ContentPlatform.YOUTUBE: explicit,
        ContentPlatform.TWITCH: explicit,
        ContentPlatform.INSTAGRAM: explicit,
        ContentPlatform.TIKTOK: explicit,
        ContentPlatform.DISCORD: explicit,
    }


class ContentAttributionConfig(BaseModel):
    display_threshold: float = ConfidenceLevel.HIGH
    save_threshold: float = ConfidenceLevel.MEDIUM
    enable_cashtag: bool = True
    enable_hashtag: bool = True
    enable_name_mention: bool = True
    platform_rules: Dict[ContentPlatform, PlatformRule] = Field(
        default_factory=_default_platform_rules
    )


class ContentSignals(BaseModel):
    """Keywords parsed out of content text"""

    cashtags: List[str] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)


class ContentMatch(BaseModel):
    """One project matched by one content item"""

    project_id: str
    social_link_id: str
    confidence: float
    reason: AttributionReason
    matched_keywords: List[str] = Field(default_factory=list)
    should_display: bool = False
    requires_manual_review: bool = False


class ContentAttributionResult(BaseModel):
    content_id: str
    matches: List[ContentMatch] = Field(default_factory=list)

    @property
    def attributed(self) -> bool:
        return bool(self.matches)


class ContentAttributionRecord(BaseModel):
    """Persisted content attribution"""

    id: Optional[str] = None
    project_id: str
    social_account_id: str
    content_id: str
    content_type: str
    content_url: Optional[str] = None
    content_text: Optional[str] = None
    posted_at: datetime
    reason: AttributionReason
    matched_keywords: List[str] = Field(default_factory=list)
    confidence: float
    engagement: Engagement = Field(default_factory=Engagement)
    manually_adjusted: bool = False
    adjusted_by: Optional[str] = None
    adjustment_note: Optional[str] = None

    @field_validator("confidence")
    @classmethod
    def confidence_is_tier(cls, v: float) -> float:
        if v not in ConfidenceLevel.ALLOWED:
            raise ValueError(f"confidence {v} is not a rule tier")
        return v


class ContentAttributionStats(BaseModel):
    project_id: str
    total: int = 0
    displayed: int = 0
    pending_review: int = 0
    manually_adjusted: int = 0
