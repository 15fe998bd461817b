"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE_MS = 500
DEFAULT_HISTORY_MAX_AGE_SECONDS = 24 * 60 * 60
DEFAULT_HISTORY_MAX_ITEMS = 1000
DEFAULT_MAX_PENDING_AGE_SECONDS = 60
DEFAULT_MAX_FAILED_RATIO = 0.1
DEFAULT_RECENT_FAILURES = 5

DEFAULT_REPORT_LIMIT = 50
MAX_REPORT_LIMIT = 500
