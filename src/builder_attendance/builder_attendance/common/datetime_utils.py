from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield each date in ``[start, end]`` (inclusive)."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """MySQL DATETIME has no zone: store aware values as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
