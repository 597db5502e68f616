"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import date

# Python weekday numbering (Monday=0): Friday is never a class day.
DEFAULT_EXCLUDED_WEEKDAY = 4

# Recurring holidays, never class days.
DEFAULT_HOLIDAYS = frozenset({date(2025, 4, 20)})  # Easter Sunday

# First day attendance is counted from.
DEFAULT_EPOCH_START = date(2025, 3, 15)

DEFAULT_CALENDAR_CACHE_TTL_SECONDS = 180

DEFAULT_MATCH_THRESHOLD = 0.75
DEFAULT_MATCH_TIMEOUT_SECONDS = 10.0
DEFAULT_RECOGNITION_COOLDOWN_SECONDS = 10
DEFAULT_RECOGNITION_HISTORY_SIZE = 1024

DEFAULT_NOTIFY_DEBOUNCE_SECONDS = 180.0
DEFAULT_FEED_ERROR_COOLDOWN_SECONDS = 30.0
DEFAULT_FEED_POLL_INTERVAL_SECONDS = 5.0

ATTENDANCE_TABLE = "attendance"

NOTE_ABSENT_NO_RECORD = "Automatically marked as absent (no record for day)"
NOTE_ABSENT_END_OF_DAY = "Automatically marked as absent (end of day)"

# Lower-cased fragments identifying notes written by the system.
AUTOMATED_NOTE_MARKERS = ("automatically marked", "auto marked", "marked absent by system")
