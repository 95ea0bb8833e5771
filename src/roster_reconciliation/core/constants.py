"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_REFRESH_INTERVAL_SECONDS = 30
DEFAULT_LATE_GRACE_MINUTES = 0
DEFAULT_DAILY_TARGET_HOURS = 8
DEFAULT_MAX_BREAK_MINUTES = 60

UNKNOWN_SHIFT_NAME = "Unknown shift"
DEFAULT_SHIFT_COLOR = "#9ca3af"
