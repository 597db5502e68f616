from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..core import constants
from ..core.enums import ChangeKind
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, run_blocking
from .feed import ChangeEvent, ChangeFeed, ErrorHandler, EventHandler, FeedSubscription

logger = logging.getLogger(__name__)

_WATCHABLE_TABLES = frozenset({"attendance", "builders", "cancelled_days", "face_signatures"})

Fingerprint = tuple[int, Optional[object]]


def classify(previous: Fingerprint, current: Fingerprint) -> Optional[ChangeKind]:
    """Guess the kind of change between two ``(row_count, max_updated_at)`` fingerprints."""
    if previous == current:
        return None
    if current[0] > previous[0]:
        return ChangeKind.INSERT
    if current[0] < previous[0]:
        return ChangeKind.DELETE
    return ChangeKind.UPDATE


class _PollingSubscription(FeedSubscription):
    def __init__(self, feed: "MySQLPollingChangeFeed", table: str, on_event: EventHandler, on_error: ErrorHandler):
        self._feed = feed
        self._table = table
        self._on_event = on_event
        self._on_error = on_error
        self._closed = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    def close(self) -> None:
        self._closed = True
        if not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()

    async def _run(self) -> None:
        previous: Optional[Fingerprint] = None
        while not self._closed:
            try:
                current = await self._feed.fingerprint(self._table)
            except Exception as e:
                if not self._closed:
                    self._on_error(e)
                return

            if previous is not None and not self._closed:
                kind = classify(previous, current)
                if kind is not None:
                    self._on_event(ChangeEvent(table=self._table, kind=kind))
            previous = current
            await asyncio.sleep(self._feed.interval)


class MySQLPollingChangeFeed(ChangeFeed):
    """Change feed over MySQL built on polling.

    MySQL has no push notifications for a plain client connection, so each open
    subscription samples ``COUNT(*)`` and ``MAX(updated_at)`` of the table every
    ``interval`` seconds. Several writes between two polls surface as one event.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, interval: float = constants.DEFAULT_FEED_POLL_INTERVAL_SECONDS):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._conn_factory = conn_factory
        self._interval = float(interval)

    @property
    def interval(self) -> float:
        return self._interval

    def open(self, table: str, on_event: EventHandler, on_error: ErrorHandler) -> FeedSubscription:
        if table not in _WATCHABLE_TABLES:
            raise ValidationError(f"Table {table!r} cannot be watched")
        logger.debug("Polling %s every %.1fs", table, self._interval)
        return _PollingSubscription(self, table, on_event, on_error)

    async def fingerprint(self, table: str) -> Fingerprint:
        return await run_blocking(self._fingerprint, table)

    def _fingerprint(self, table: str) -> Fingerprint:
        with db_cursor(self._conn_factory) as (_, cur):
            # Table name is checked against _WATCHABLE_TABLES in open().
            cur.execute(f"SELECT COUNT(*) AS row_count, MAX(updated_at) AS last_change FROM {table}")
            r = fetchone(cur) or {}
            return int(r.get("row_count") or 0), r.get("last_change")
