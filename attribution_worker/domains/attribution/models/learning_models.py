"""
Adaptive learning model state
"""

import math
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from attribution_worker.shared.constants.attribution import (
    DEFAULT_LEARNING_RATE,
    DEFAULT_MIN_TRAINING_SAMPLES,
    DEFAULT_MODEL_VERSION,
    DEFAULT_PLATFORM_LAMBDAS,
    DEFAULT_RETRAIN_EVERY,
    DEFAULT_RETRAIN_ITERATIONS,
    DEFAULT_SENTIMENT_WEIGHT,
    DEFAULT_GEO_WEIGHT,
    DEFAULT_TIME_WEIGHT,
)
from attribution_worker.shared.helpers import now_utc
from .click_models import CacheStats, ClickStats

WEIGHT_TOLERANCE = 1e-9


class FeatureVector(BaseModel):
    """The three scoring features, each in [0, 1]"""

    model_config = ConfigDict(frozen=True)

    time_score: float
    geo_score: float
    sentiment_score: float


class ModelWeights(BaseModel):
    """Immutable snapshot of the scoring parameters; replaced, never mutated"""

    model_config = ConfigDict(frozen=True)

    version: str = DEFAULT_MODEL_VERSION
    time_weight: float = DEFAULT_TIME_WEIGHT
    geo_weight: float = DEFAULT_GEO_WEIGHT
    sentiment_weight: float = DEFAULT_SENTIMENT_WEIGHT
    platform_lambdas: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_PLATFORM_LAMBDAS)
    )
    accuracy: float = 0.0
    training_count: int = 0
    last_updated: datetime = Field(default_factory=now_utc)

    @field_validator("platform_lambdas")
    @classmethod
    def ensure_default_lambda(cls, v: Dict[str, float]) -> Dict[str, float]:
        lambdas = {key.lower(): value for key, value in v.items()}
        lambdas.setdefault("default", DEFAULT_PLATFORM_LAMBDAS["default"])
        return lambdas

    @classmethod
    def initial(cls) -> "ModelWeights":
        """Domain-expert starting weights"""
        return cls()

    def as_tuple(self) -> tuple:
        return (self.time_weight, self.geo_weight, self.sentiment_weight)

    def lambda_for(self, platform: Optional[str]) -> float:
        if platform and platform.lower() in self.platform_lambdas:
            return self.platform_lambdas[platform.lower()]
        return self.platform_lambdas["default"]

    def time_score(self, platform: Optional[str], minutes_elapsed: float) -> float:
        """exp(-lambda * hours) decay for the platform"""
        hours = max(minutes_elapsed, 0.0) / 60.0
        return math.exp(-self.lambda_for(platform) * hours)

    def predict(self, features: FeatureVector) -> float:
        """Weighted feature sum clamped to [0, 1]"""
        score = (
            self.time_weight * features.time_score
            + self.geo_weight * features.geo_score
            + self.sentiment_weight * features.sentiment_score
        )
        return min(1.0, max(0.0, score))

    def normalized(self) -> "ModelWeights":
        """Copy whose three feature weights are non-negative and sum to 1.0"""
        weights = [max(0.0, w) if math.isfinite(w) else 0.0 for w in self.as_tuple()]
        total = sum(weights)
        if total <= 0.0:
            weights = [DEFAULT_TIME_WEIGHT, DEFAULT_GEO_WEIGHT, DEFAULT_SENTIMENT_WEIGHT]
            total = 1.0
        if abs(total - 1.0) <= WEIGHT_TOLERANCE and list(self.as_tuple()) == weights:
            return self
        return self.model_copy(
            update={
                "time_weight": weights[0] / total,
                "geo_weight": weights[1] / total,
                "sentiment_weight": weights[2] / total,
            }
        )


class GroundTruthSample(BaseModel):
    """Training example from a resolved or reviewed click-to-sale pairing"""

    model_config = ConfigDict(frozen=True)

    click_id: Optional[str] = None
    sale_id: str
    time_delta_minutes: float
    geo_match: float = Field(ge=0.0, le=1.0)
    sentiment_score: float = Field(ge=0.0, le=1.0)
    platform: str = "default"
    did_convert: bool
    timestamp: datetime = Field(default_factory=now_utc)


class FeedbackFeatures(BaseModel):
    """Feature values behind a reviewed prediction"""

    time_delta_minutes: float = 0.0
    geo_score: float = Field(default=0.0, ge=0.0, le=1.0)
    sentiment_score: float = Field(default=0.0, ge=0.0, le=1.0)
    platform: str = "default"


class PredictionFeedback(BaseModel):
    """Human verdict on one prediction"""

    sale_id: str
    click_id: Optional[str] = None
    predicted_score: float = Field(ge=0.0, le=1.0)
    actual_converted: bool
    features: FeedbackFeatures


class LearningConfig(BaseModel):
    """Explicit learning parameters passed to the model at construction"""

    model_config = ConfigDict(frozen=True)

    min_training_samples: int = Field(default=DEFAULT_MIN_TRAINING_SAMPLES, ge=1)
    learning_rate: float = Field(default=DEFAULT_LEARNING_RATE, gt=0.0)
    retrain_every: int = Field(default=DEFAULT_RETRAIN_EVERY, ge=1)
    retrain_iterations: int = Field(default=DEFAULT_RETRAIN_ITERATIONS, ge=1)
    # None keeps every sample; otherwise reservoir-sample down to this many
    max_retained_samples: Optional[int] = Field(default=None, ge=1)
    random_seed: Optional[int] = None

    @classmethod
    def production(cls, **overrides) -> "LearningConfig":
        return cls(**{"min_training_samples": 50, "learning_rate": 0.01, **overrides})

    @classmethod
    def early_adopter(cls, **overrides) -> "LearningConfig":
        return cls(**{"min_training_samples": 25, "learning_rate": 0.02, **overrides})

    @classmethod
    def demo(cls, **overrides) -> "LearningConfig":
        return cls(**{"min_training_samples": 10, "learning_rate": 0.05, **overrides})

    @classmethod
    def high_volume(cls, **overrides) -> "LearningConfig":
        return cls(**{"min_training_samples": 100, "learning_rate": 0.01, **overrides})

    @classmethod
    def from_preset(cls, name: Optional[str], **overrides) -> "LearningConfig":
        presets = {
            "production": cls.production,
            "early_adopter": cls.early_adopter,
            "demo": cls.demo,
            "high_volume": cls.high_volume,
        }
        if not name:
            return cls(**overrides)
        if name not in presets:
            raise ValueError(f"Unknown learning preset '{name}'")
        return presets[name](**overrides)


class ModelState(BaseModel):
    """Read-only view of the learning model"""

    weights: ModelWeights
    scoring_weights: ModelWeights
    training_data_count: int
    retained_samples: int
    is_learning: bool


class LearningHealth(BaseModel):
    """Result of the learning health check"""

    healthy: bool
    warnings: List[str] = Field(default_factory=list)


class ModelStatus(BaseModel):
    """Operational snapshot of the engine"""

    model: ModelState
    clicks: ClickStats
    health: LearningHealth
    cache: Optional[CacheStats] = None
