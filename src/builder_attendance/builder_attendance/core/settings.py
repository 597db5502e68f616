from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from types import ModuleType

from ..common.datetime_utils import parse_iso_date
from . import constants


@dataclass(frozen=True)
class EngineSettings:
    """Engine tunables resolved from a settings module (see ``config/``)."""

    excluded_weekday: int = constants.DEFAULT_EXCLUDED_WEEKDAY
    holidays: frozenset[date] = field(default_factory=lambda: constants.DEFAULT_HOLIDAYS)
    epoch_start: date = constants.DEFAULT_EPOCH_START
    calendar_cache_ttl_seconds: float = constants.DEFAULT_CALENDAR_CACHE_TTL_SECONDS
    match_threshold: float = constants.DEFAULT_MATCH_THRESHOLD
    match_timeout_seconds: float = constants.DEFAULT_MATCH_TIMEOUT_SECONDS
    recognition_cooldown_seconds: float = constants.DEFAULT_RECOGNITION_COOLDOWN_SECONDS
    recognition_history_size: int = constants.DEFAULT_RECOGNITION_HISTORY_SIZE
    notify_debounce_seconds: float = constants.DEFAULT_NOTIFY_DEBOUNCE_SECONDS
    feed_error_cooldown_seconds: float = constants.DEFAULT_FEED_ERROR_COOLDOWN_SECONDS
    feed_poll_interval_seconds: float = constants.DEFAULT_FEED_POLL_INTERVAL_SECONDS

    @classmethod
    def from_module(cls, settings: ModuleType) -> "EngineSettings":
        defaults = cls()

        holidays = getattr(settings, "HOLIDAYS", None)
        epoch = getattr(settings, "EPOCH_START", None)

        return cls(
            excluded_weekday=int(getattr(settings, "EXCLUDED_WEEKDAY", defaults.excluded_weekday)),
            holidays=frozenset(_as_date(d) for d in holidays) if holidays is not None else defaults.holidays,
            epoch_start=_as_date(epoch) if epoch else defaults.epoch_start,
            calendar_cache_ttl_seconds=float(
                getattr(settings, "CALENDAR_CACHE_TTL_SECONDS", defaults.calendar_cache_ttl_seconds)
            ),
            match_threshold=float(getattr(settings, "MATCH_THRESHOLD", defaults.match_threshold)),
            match_timeout_seconds=float(getattr(settings, "MATCH_TIMEOUT_SECONDS", defaults.match_timeout_seconds)),
            recognition_cooldown_seconds=float(
                getattr(settings, "RECOGNITION_COOLDOWN_SECONDS", defaults.recognition_cooldown_seconds)
            ),
            recognition_history_size=int(
                getattr(settings, "RECOGNITION_HISTORY_SIZE", defaults.recognition_history_size)
            ),
            notify_debounce_seconds=float(
                getattr(settings, "NOTIFY_DEBOUNCE_SECONDS", defaults.notify_debounce_seconds)
            ),
            feed_error_cooldown_seconds=float(
                getattr(settings, "FEED_ERROR_COOLDOWN_SECONDS", defaults.feed_error_cooldown_seconds)
            ),
            feed_poll_interval_seconds=float(
                getattr(settings, "FEED_POLL_INTERVAL_SECONDS", defaults.feed_poll_interval_seconds)
            ),
        )


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value))
