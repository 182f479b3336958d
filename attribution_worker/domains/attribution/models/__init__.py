"""
Attribution domain models
"""

from .click_models import (
    Platform,
    MatchStrategy,
    TrackedLink,
    ClickEvent,
    MatchingSignals,
    ClickMatch,
    ClickStats,
    CacheStats,
    CachedClick,
)
from .attribution_models import (
    AttributionStatus,
    REVIEWED_STATUSES,
    MatchType,
    ResolutionTier,
    SaleEvent,
    ConfidenceFactors,
    ExactMatch,
    ExactMatchEvidence,
    ProbabilisticMatchEvidence,
    AttributionRecord,
    AttributionOptions,
    AttributionResult,
)
from .learning_models import (
    FeatureVector,
    ModelWeights,
    GroundTruthSample,
    FeedbackFeatures,
    PredictionFeedback,
    LearningConfig,
    ModelState,
    LearningHealth,
    ModelStatus,
)
from .content_models import (
    AudienceSlice,
    AttributedContent,
    ContentCorrelation,
    ContentPlatform,
    ContentType,
    AttributionMode,
    AttributionReason,
    ConfidenceLevel,
    Engagement,
    RawContent,
    ProjectSocialLink,
    Project,
    PlatformRule,
    ContentAttributionConfig,
    ContentSignals,
    ContentMatch,
    ContentAttributionResult,
    ContentAttributionRecord,
    ContentAttributionStats,
)

__all__ = [
    "Platform",
    "MatchStrategy",
    "TrackedLink",
    "ClickEvent",
    "MatchingSignals",
    "ClickMatch",
    "ClickStats",
    "CacheStats",
    "CachedClick",
    "AttributionStatus",
    "REVIEWED_STATUSES",
    "MatchType",
    "ResolutionTier",
    "SaleEvent",
    "ConfidenceFactors",
    "ExactMatch",
    "ExactMatchEvidence",
    "ProbabilisticMatchEvidence",
    "AttributionRecord",
    "AttributionOptions",
    "AttributionResult",
    "FeatureVector",
    "ModelWeights",
    "GroundTruthSample",
    "FeedbackFeatures",
    "PredictionFeedback",
    "LearningConfig",
    "ModelState",
    "LearningHealth",
    "ModelStatus",
    "AudienceSlice",
    "AttributedContent",
    "ContentCorrelation",
    "ContentPlatform",
    "ContentType",
    "AttributionMode",
    "AttributionReason",
    "ConfidenceLevel",
    "Engagement",
    "RawContent",
    "ProjectSocialLink",
    "Project",
    "PlatformRule",
    "ContentAttributionConfig",
    "ContentSignals",
    "ContentMatch",
    "ContentAttributionResult",
    "ContentAttributionRecord",
    "ContentAttributionStats",
]
