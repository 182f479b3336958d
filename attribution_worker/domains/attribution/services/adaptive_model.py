"""
Adaptive learning model

Holds the time-decay / geo / sentiment weights used for probabilistic
scoring and improves them from ground truth.

Two update paths share the same state:

- ``provide_feedback`` takes one online gradient step per reviewed prediction.
  It never touches ``version`` or ``training_count``.
- ``retrain`` runs full-batch gradient descent over the retained samples and
  publishes a new versioned snapshot. It owns ``version`` and ``training_count``.

Weights are immutable ``ModelWeights`` snapshots swapped under a lock, so a
reader always sees a complete vector.
"""

import random
import threading
from datetime import datetime
from typing import Callable, List, Optional

import numpy as np

from attribution_worker.core.logging import get_logger
from attribution_worker.shared.helpers import now_utc
from ..models import (
    FeatureVector,
    GroundTruthSample,
    LearningConfig,
    LearningHealth,
    ModelState,
    ModelWeights,
    PredictionFeedback,
)

logger = get_logger(__name__)


def _unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


class AdaptiveLearningModel:
    """Feature weights plus the ground-truth history they are trained on"""

    def __init__(
        self,
        config: Optional[LearningConfig] = None,
        initial_weights: Optional[ModelWeights] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.config = config or LearningConfig()
        self._clock = clock
        self._initial_weights = (initial_weights or ModelWeights.initial()).normalized()
        self._weights = self._initial_weights
        self._samples: List[GroundTruthSample] = []
        self._sample_count = 0
        self._lock = threading.RLock()
        self._rng = random.Random(self.config.random_seed)

    # State

    @property
    def weights(self) -> ModelWeights:
        """Current committed weights"""
        with self._lock:
            return self._weights.normalized()

    @property
    def scoring_weights(self) -> ModelWeights:
        """Weights used for probabilistic scoring; expert defaults until enough samples"""
        with self._lock:
            if self._sample_count < self.config.min_training_samples:
                return self._initial_weights
            return self._weights.normalized()

    @property
    def sample_count(self) -> int:
        """Total samples ever observed"""
        return self._sample_count

    @property
    def is_learning(self) -> bool:
        return self._sample_count >= self.config.min_training_samples

    def _append(self, sample: GroundTruthSample) -> None:
        """Append a sample, reservoir-sampling once the retention bound is hit"""
        with self._lock:
            self._sample_count += 1
            limit = self.config.max_retained_samples
            if limit is None or len(self._samples) < limit:
                self._samples.append(sample)
                return
            slot = self._rng.randrange(self._sample_count)
            if slot < limit:
                self._samples[slot] = sample

    # Ground truth

    def record_ground_truth(
        self,
        click_id: Optional[str],
        sale_id: str,
        time_delta_minutes: float,
        geo_score: float,
        sentiment_score: float,
        platform: Optional[str],
    ) -> GroundTruthSample:
        """Append a positive sample from an exact match, retraining on schedule"""
        sample = GroundTruthSample(
            click_id=click_id,
            sale_id=sale_id,
            time_delta_minutes=max(0.0, float(time_delta_minutes)),
            geo_match=_unit(geo_score),
            sentiment_score=_unit(sentiment_score),
            platform=(platform or "default").lower(),
            did_convert=True,
            timestamp=self._clock(),
        )
        self._append(sample)

        logger.debug(
            "Ground truth recorded",
            sale_id=sale_id,
            click_id=click_id,
            samples=self._sample_count,
        )

        if self.should_retrain():
            self.retrain()
        return sample

    def should_retrain(self) -> bool:
        return (
            self._sample_count >= self.config.min_training_samples
            and self._sample_count % self.config.retrain_every == 0
        )

    def provide_feedback(self, feedback: PredictionFeedback) -> GroundTruthSample:
        """Append a human-labelled sample and take one online gradient step"""
        features = feedback.features
        sample = GroundTruthSample(
            click_id=feedback.click_id,
            sale_id=feedback.sale_id,
            time_delta_minutes=max(0.0, features.time_delta_minutes),
            geo_match=features.geo_score,
            sentiment_score=features.sentiment_score,
            platform=features.platform.lower(),
            did_convert=feedback.actual_converted,
            timestamp=self._clock(),
        )
        self._append(sample)

        with self._lock:
            current = self._weights
            vector = self._features(current, sample)
            actual = 1.0 if feedback.actual_converted else 0.0
            gradient = 2.0 * (feedback.predicted_score - actual)
            rate = self.config.learning_rate

            updated = current.model_copy(
                update={
                    "time_weight": current.time_weight - rate * gradient * vector.time_score,
                    "geo_weight": current.geo_weight - rate * gradient * vector.geo_score,
                    "sentiment_weight": current.sentiment_weight
                    - rate * gradient * vector.sentiment_score,
                    "last_updated": self._clock(),
                }
            ).normalized()
            self._weights = updated

        logger.info(
            "Online feedback applied",
            sale_id=feedback.sale_id,
            converted=feedback.actual_converted,
            gradient=round(gradient, 4),
            time_weight=round(updated.time_weight, 4),
            geo_weight=round(updated.geo_weight, 4),
            sentiment_weight=round(updated.sentiment_weight, 4),
        )
        return sample

    # Batch training

    @staticmethod
    def _features(weights: ModelWeights, sample: GroundTruthSample) -> FeatureVector:
        return FeatureVector(
            time_score=weights.time_score(sample.platform, sample.time_delta_minutes),
            geo_score=sample.geo_match,
            sentiment_score=sample.sentiment_score,
        )

    @staticmethod
    def _loss(features: np.ndarray, labels: np.ndarray, vector: np.ndarray) -> float:
        predictions = np.clip(features @ vector, 0.0, 1.0)
        return float(np.mean((predictions - labels) ** 2))

    def _project(self, vector: np.ndarray) -> np.ndarray:
        vector = np.clip(vector, 0.0, None)
        total = vector.sum()
        if total <= 0.0:
            return np.array(self._initial_weights.as_tuple(), dtype=float)
        return vector / total

    def retrain(self) -> Optional[ModelWeights]:
        """Full-batch gradient descent keeping the best-loss snapshot"""
        with self._lock:
            samples = list(self._samples)
            current = self._weights
            observed = self._sample_count

        if len(samples) < self.config.min_training_samples:
            logger.debug("Skipping retrain, not enough samples", samples=len(samples))
            return None

        features = np.array(
            [
                [f.time_score, f.geo_score, f.sentiment_score]
                for f in (self._features(current, s) for s in samples)
            ],
            dtype=float,
        )
        labels = np.array([1.0 if s.did_convert else 0.0 for s in samples], dtype=float)

        vector = np.array(current.as_tuple(), dtype=float)
        best_vector = vector.copy()
        best_loss = self._loss(features, labels, vector)
        rate = self.config.learning_rate

        for _ in range(self.config.retrain_iterations):
            errors = np.clip(features @ vector, 0.0, 1.0) - labels
            gradient = 2.0 * (features.T @ errors) / len(samples)
            vector = self._project(vector - rate * gradient)

            loss = self._loss(features, labels, vector)
            if loss < best_loss:
                best_loss = loss
                best_vector = vector.copy()

        now = self._clock()
        retrained = current.model_copy(
            update={
                "version": f"v{int(now.timestamp())}",
                "time_weight": float(best_vector[0]),
                "geo_weight": float(best_vector[1]),
                "sentiment_weight": float(best_vector[2]),
                "accuracy": max(0.0, 1.0 - best_loss),
                "training_count": max(current.training_count, observed),
                "last_updated": now,
            }
        ).normalized()

        with self._lock:
            self._weights = retrained

        logger.info(
            "Model retrained",
            version=retrained.version,
            samples=len(samples),
            accuracy=round(retrained.accuracy, 4),
            time_weight=round(retrained.time_weight, 4),
            geo_weight=round(retrained.geo_weight, 4),
            sentiment_weight=round(retrained.sentiment_weight, 4),
        )
        return retrained

    # Introspection and persistence

    def load_weights(self, weights: ModelWeights) -> ModelWeights:
        """Replace committed weights, e.g. from a persisted snapshot"""
        loaded = weights.normalized()
        with self._lock:
            self._weights = loaded
        logger.info("Model weights loaded", version=loaded.version)
        return loaded

    def export_training_data(self) -> List[GroundTruthSample]:
        with self._lock:
            return list(self._samples)

    def get_model_state(self) -> ModelState:
        with self._lock:
            return ModelState(
                weights=self.weights,
                scoring_weights=self.scoring_weights,
                training_data_count=self._sample_count,
                retained_samples=len(self._samples),
                is_learning=self.is_learning,
            )

    def check_learning_health(self) -> LearningHealth:
        """Flag thin data, lopsided weights and poor accuracy"""
        weights = self.weights
        warnings = []

        if self._sample_count < 10:
            warnings.append(
                f"Only {self._sample_count} training samples; predictions rely on defaults"
            )

        for name, value in (
            ("time", weights.time_weight),
            ("geo", weights.geo_weight),
            ("sentiment", weights.sentiment_weight),
        ):
            if value > 0.8:
                warnings.append(f"{name} weight {value:.2f} dominates the model")
            elif value < 0.05:
                warnings.append(f"{name} weight {value:.2f} is effectively ignored")

        if self.is_learning and weights.training_count > 0 and weights.accuracy < 0.7:
            warnings.append(f"Model accuracy {weights.accuracy:.2f} is below 0.70")

        return LearningHealth(healthy=not warnings, warnings=warnings)
