"""
Attribution engine constants
"""

DEFAULT_ATTRIBUTION_WINDOW_MINUTES = 1440
DEFAULT_MIN_CONFIDENCE = 0.5
DEFAULT_MAX_CLICKS_PER_USER = 100
DEFAULT_CLICK_SWEEP_INTERVAL_SECONDS = 300

# Provisional scores per exact-match strategy
IP_MATCH_SCORE = 0.95
TRACKER_MATCH_SCORE = 0.90
FINGERPRINT_MATCH_SCORE = 0.80
GEO_MATCH_SCORE = 0.60

# Confidence contributions
IP_CONFIDENCE = 0.50
TRACKER_CONFIDENCE = 0.35
FINGERPRINT_CONFIDENCE = 0.25
GEO_CONFIDENCE = 0.15
RECENT_BONUS = 0.10
RECENT_BONUS_MINUTES = 60
SAME_DAY_PART_BONUS = 0.05
SAME_DAY_PART_MINUTES = 240
MULTI_SIGNAL_BONUS = 0.10
DUAL_SIGNAL_BONUS = 0.05
MAX_CONFIDENCE_WITH_IP = 1.0
MAX_CONFIDENCE_WITHOUT_IP = 0.95

# Status bands
MATCHED_CONFIDENCE_THRESHOLD = 0.80
UNCERTAIN_CONFIDENCE_THRESHOLD = 0.50

# Learning defaults
DEFAULT_TIME_WEIGHT = 0.5
DEFAULT_GEO_WEIGHT = 0.3
DEFAULT_SENTIMENT_WEIGHT = 0.2
DEFAULT_MODEL_VERSION = "v1.0.0"
DEFAULT_PLATFORM_LAMBDAS = {
    "twitter": 0.5,
    "youtube": 0.1,
    "instagram": 0.3,
    "tiktok": 0.4,
    "twitch": 2.0,
    "default": 0.5,
}
DEFAULT_MIN_TRAINING_SAMPLES = 50
DEFAULT_LEARNING_RATE = 0.01
DEFAULT_RETRAIN_EVERY = 10
DEFAULT_RETRAIN_ITERATIONS = 100

NEUTRAL_SENTIMENT_SCORE = 0.5
AUDIENCE_GEO_AMPLIFICATION = 5.0

INFERRED_LINK_SLUG_PREFIX = "inferred-"
