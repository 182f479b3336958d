"""
Redis-related constants
"""

DEFAULT_REDIS_PORT = 6379
DEFAULT_REDIS_DB = 0
DEFAULT_REDIS_TLS = False

# Click cache key scheme
CLICK_CACHE_PREFIX = "click:v2:"
CLICK_CACHE_ID_PREFIX = f"{CLICK_CACHE_PREFIX}id:"
CLICK_CACHE_IP_PREFIX = f"{CLICK_CACHE_PREFIX}ip:"
CLICK_CACHE_TRACKER_PREFIX = f"{CLICK_CACHE_PREFIX}tracker:"
CLICK_CACHE_FINGERPRINT_PREFIX = f"{CLICK_CACHE_PREFIX}fp:"
CLICK_CACHE_USER_PREFIX = f"{CLICK_CACHE_PREFIX}user:"

DEFAULT_CLICK_CACHE_TTL_SECONDS = 86400

# Most-recent-N bounds per list index
CLICK_CACHE_IP_LIST_SIZE = 100
CLICK_CACHE_FINGERPRINT_LIST_SIZE = 50
CLICK_CACHE_USER_LIST_SIZE = 200
