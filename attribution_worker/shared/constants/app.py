"""
Application-level constants
"""

PROJECT_NAME = "Attribution Worker"
VERSION = "1.0.0"
DEFAULT_PORT = 8001
ENVIRONMENT_DEVELOPMENT = "development"
ENVIRONMENT_PRODUCTION = "production"
API_V1_PREFIX = "/api/v1"
