"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SCOPE = "default"
DEFAULT_PASS_NO_PREFIX = "GP"
DEFAULT_PASS_NO_WIDTH = 8

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15

DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0
MAX_LIST_LIMIT = 5000
