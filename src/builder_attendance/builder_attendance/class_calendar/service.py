from __future__ import annotations

import asyncio
import logging
import time
from datetime import date
from typing import AbstractSet, Callable, Iterator, Optional

from ..common.datetime_utils import iter_dates
from ..common.validators import blank_to_none
from ..core import constants
from ..core.exceptions import CalendarLookupError, DatastoreError
from .repository import CancelledDayRepository

logger = logging.getLogger(__name__)


def is_class_day(
    day: date,
    *,
    excluded_weekday: int = constants.DEFAULT_EXCLUDED_WEEKDAY,
    holidays: AbstractSet[date] = constants.DEFAULT_HOLIDAYS,
    cancelled: AbstractSet[date] = frozenset(),
) -> bool:
    """Pure class-day rule: not the excluded weekday, not a holiday, not cancelled."""
    if day.weekday() == excluded_weekday:
        return False
    if day in holidays:
        return False
    return day not in cancelled


class ClassCalendar:
    """Decides whether a date counts toward attendance.

    The cancelled-day set is cached for ``ttl_seconds``. Reads never wait on the
    datastore: once the cache goes stale, ``is_class_day`` schedules a background
    refresh (when an event loop is running) and keeps answering from the stale set.
    """

    def __init__(
        self,
        cancelled_days: CancelledDayRepository,
        *,
        excluded_weekday: int = constants.DEFAULT_EXCLUDED_WEEKDAY,
        holidays: AbstractSet[date] = constants.DEFAULT_HOLIDAYS,
        ttl_seconds: float = constants.DEFAULT_CALENDAR_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not 0 <= int(excluded_weekday) <= 6:
            raise ValueError(f"excluded_weekday must be 0..6, got {excluded_weekday}")

        self._repo = cancelled_days
        self._excluded_weekday = int(excluded_weekday)
        self._holidays = frozenset(holidays)
        self._ttl = float(ttl_seconds)
        self._clock = clock

        self._cancelled: frozenset[date] = frozenset()
        self._loaded_at: Optional[float] = None
        self._failed_at: Optional[float] = None
        # Background refreshes after a failed lookup wait at least this long.
        self._retry_seconds = min(self._ttl, 30.0)
        self._refresh_task: Optional[asyncio.Task] = None
        # Bumped by invalidate(); a fetch only marks the cache fresh if it
        # started in the current generation.
        self._generation = 0
        self._task_generation = 0

    @property
    def excluded_weekday(self) -> int:
        return self._excluded_weekday

    @property
    def holidays(self) -> frozenset[date]:
        return self._holidays

    @property
    def cancelled_days(self) -> frozenset[date]:
        return self._cancelled

    @property
    def is_loaded(self) -> bool:
        return self._loaded_at is not None

    @property
    def is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self._ttl

    def is_class_day(self, day: date) -> bool:
        if self.is_stale:
            self._schedule_refresh()
        return is_class_day(
            day,
            excluded_weekday=self._excluded_weekday,
            holidays=self._holidays,
            cancelled=self._cancelled,
        )

    def class_days(self, start: date, end: date) -> Iterator[date]:
        for day in iter_dates(start, end):
            if self.is_class_day(day):
                yield day

    def invalidate(self) -> None:
        """Mark the cache stale. A fetch already in flight will not count as fresh."""
        self._loaded_at = None
        self._generation += 1

    async def prime(self) -> None:
        """Load the cancelled-day set if it has never been loaded."""
        if self._loaded_at is None:
            await self.refresh()

    async def refresh(self, *, force: bool = False) -> frozenset[date]:
        """Fetch the cancelled-day set if stale, or always with ``force=True``.

        Joins a fetch already in flight when it started after the last
        invalidation; an older one is awaited and then followed by a new fetch.
        """
        if force:
            self.invalidate()
        elif not self.is_stale:
            return self._cancelled

        target = self._generation
        while True:
            task = self._refresh_task
            if task is not None and not task.done():
                await asyncio.shield(task)
                if self._task_generation >= target:
                    return self._cancelled
                continue

            self._start_reload()
            await asyncio.shield(self._refresh_task)
            return self._cancelled

    async def cancel_day(self, day: date, *, reason: Optional[str] = None, created_by: Optional[str] = None) -> None:
        await self._repo.add(day=day, reason=blank_to_none(reason), created_by=created_by)
        logger.info("Cancelled class day %s (%s)", day.isoformat(), reason or "no reason")
        self.invalidate()

    async def restore_day(self, day: date) -> bool:
        removed = await self._repo.remove(day=day)
        if removed:
            logger.info("Restored class day %s", day.isoformat())
        self.invalidate()
        return removed

    def _schedule_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        if self._failed_at is not None and self._clock() - self._failed_at < self._retry_seconds:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync caller): keep serving what we have.
            return
        self._start_reload()

    def _start_reload(self) -> None:
        self._task_generation = self._generation
        self._refresh_task = asyncio.ensure_future(self._reload(self._generation))

    async def _reload(self, generation: int) -> None:
        try:
            rows = await self._fetch()
        except CalendarLookupError as e:
            self._failed_at = self._clock()
            logger.warning(
                "Cancelled-days lookup failed, keeping %d cached entries: %s",
                len(self._cancelled),
                e,
            )
            return

        self._cancelled = frozenset(r.day for r in rows)
        self._failed_at = None
        if generation != self._generation:
            # Invalidated mid-fetch: the rows may predate the change, stay stale.
            logger.debug("Loaded %d cancelled days (superseded)", len(self._cancelled))
            return
        self._loaded_at = self._clock()
        logger.debug("Loaded %d cancelled days", len(self._cancelled))

    async def _fetch(self):
        try:
            return await self._repo.list_cancelled_days()
        except CalendarLookupError:
            raise
        except DatastoreError as e:
            raise CalendarLookupError(str(e)) from e
