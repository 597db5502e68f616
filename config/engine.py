"""Engine tunables shared by every environment, overridable from the environment."""

import os

# Python weekday numbering: Monday=0 ... Sunday=6. Default 4 = Friday.
EXCLUDED_WEEKDAY = int(os.getenv("EXCLUDED_WEEKDAY", "4"))
# Comma separated ISO dates.
HOLIDAYS = [d.strip() for d in os.getenv("HOLIDAYS", "2025-04-20").split(",") if d.strip()]
EPOCH_START = os.getenv("EPOCH_START", "2025-03-15")

CALENDAR_CACHE_TTL_SECONDS = float(os.getenv("CALENDAR_CACHE_TTL_SECONDS", "180"))

MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", "0.75"))
MATCH_TIMEOUT_SECONDS = float(os.getenv("MATCH_TIMEOUT_SECONDS", "10"))
RECOGNITION_COOLDOWN_SECONDS = float(os.getenv("RECOGNITION_COOLDOWN_SECONDS", "10"))
RECOGNITION_HISTORY_SIZE = int(os.getenv("RECOGNITION_HISTORY_SIZE", "1024"))

NOTIFY_DEBOUNCE_SECONDS = float(os.getenv("NOTIFY_DEBOUNCE_SECONDS", "180"))
FEED_ERROR_COOLDOWN_SECONDS = float(os.getenv("FEED_ERROR_COOLDOWN_SECONDS", "30"))
FEED_POLL_INTERVAL_SECONDS = float(os.getenv("FEED_POLL_INTERVAL_SECONDS", "5"))
