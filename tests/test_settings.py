"""
Tests for configuration, engine wiring, logging and error types
"""

import logging

import pytest

from attribution_worker.core.config.settings import (
    AttributionSettings,
    LearningSettings,
    Settings,
    validate_configuration,
)
from attribution_worker.core.exceptions import (
    AttributionPersistenceError,
    ConfigurationError,
    ConfigurationValidationError,
)
from attribution_worker.core.logging.logger import StructuredLogger
from attribution_worker.domains.attribution.services import AttributionEngine


class TestValidateConfiguration:
    def test_defaults_are_valid(self):
        validate_configuration(Settings())

    def test_non_positive_window(self):
        config = Settings(attribution=AttributionSettings(ATTRIBUTION_WINDOW_MINUTES=0))

        with pytest.raises(ConfigurationError) as exc_info:
            validate_configuration(config)

        assert exc_info.value.details["config_key"] == "ATTRIBUTION_WINDOW_MINUTES"
        assert exc_info.value.error_code == "CONFIG_VALIDATION_ERROR"

    def test_confidence_out_of_range(self):
        config = Settings(attribution=AttributionSettings(MIN_CONFIDENCE=1.5))

        with pytest.raises(ConfigurationError):
            validate_configuration(config)

    def test_retention_bound_must_be_positive(self):
        config = Settings(learning=LearningSettings(MAX_RETAINED_SAMPLES=0))

        with pytest.raises(ConfigurationError):
            validate_configuration(config)

    def test_reports_every_problem(self):
        config = Settings(
            attribution=AttributionSettings(ATTRIBUTION_WINDOW_MINUTES=0, MIN_CONFIDENCE=-0.1),
            learning=LearningSettings(LEARNING_RATE=0),
        )

        with pytest.raises(ConfigurationValidationError) as exc_info:
            validate_configuration(config)

        keys = [e["config_key"] for e in exc_info.value.validation_errors]
        assert keys == ["ATTRIBUTION_WINDOW_MINUTES", "MIN_CONFIDENCE", "LEARNING_RATE"]

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ATTRIBUTION_WINDOW_MINUTES", "60")
        monkeypatch.setenv("MATERIALIZE_INFERRED_CLICKS", "true")

        attribution = AttributionSettings()

        assert attribution.ATTRIBUTION_WINDOW_MINUTES == 60
        assert attribution.MATERIALIZE_INFERRED_CLICKS is True


class TestEngineFromSettings:
    def test_preset(self):
        config = Settings(learning=LearningSettings(LEARNING_PRESET="demo"))

        engine = AttributionEngine.from_settings(config)

        assert engine.model.config.min_training_samples == 10
        assert engine.model.config.learning_rate == 0.05
        assert engine.click_cache is None

    def test_explicit_learning_values(self):
        config = Settings(
            attribution=AttributionSettings(ATTRIBUTION_WINDOW_MINUTES=120),
            learning=LearningSettings(MIN_TRAINING_SAMPLES=5, LEARNING_RATE=0.1),
        )

        engine = AttributionEngine.from_settings(config)

        assert engine.model.config.min_training_samples == 5
        assert engine.model.config.learning_rate == 0.1
        assert engine.click_store.window_minutes == 120

    def test_redis_client_enables_cache(self, redis_client):
        engine = AttributionEngine.from_settings(Settings(), redis_client=redis_client)

        assert engine.click_cache is not None

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            AttributionEngine.from_settings(
                Settings(learning=LearningSettings(LEARNING_PRESET="turbo"))
            )


class TestStructuredLogger:
    def test_key_value_rendering(self):
        logger = StructuredLogger(logging.getLogger("tests.structured"))

        message = logger._format_message(
            "Sale attributed", sale_id="sale_1", note="two words", skipped=None
        )

        assert message == 'Sale attributed | sale_id=sale_1 | note="two words"'

    def test_plain_message(self):
        logger = StructuredLogger(logging.getLogger("tests.structured"))

        assert logger._format_message("ready") == "ready"


class TestExceptions:
    def test_to_dict(self):
        error = AttributionPersistenceError("sale_1", cause=ValueError("boom"))

        payload = error.to_dict()

        assert payload["error_code"] == "ATTRIBUTION_PERSISTENCE_ERROR"
        assert payload["details"] == {"sale_id": "sale_1"}
        assert payload["cause"] == "boom"
        assert payload["exception_type"] == "AttributionPersistenceError"
        assert str(error).startswith("[ATTRIBUTION_PERSISTENCE_ERROR]")
