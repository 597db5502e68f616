from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, run_blocking
from .model import CancelledDay
from .repository import CancelledDayRepository


class MySQLCancelledDayRepository(CancelledDayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_cancelled_days(self) -> Sequence[CancelledDay]:
        return await run_blocking(self._list_cancelled_days)

    async def add(self, *, day: date, reason: Optional[str] = None, created_by: Optional[str] = None) -> None:
        await run_blocking(self._add, day, reason, created_by)

    async def remove(self, *, day: date) -> bool:
        return await run_blocking(self._remove, day)

    def _list_cancelled_days(self) -> Sequence[CancelledDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT day, reason, created_by FROM cancelled_days ORDER BY day ASC")
            return [
                CancelledDay(day=r["day"], reason=r.get("reason"), created_by=r.get("created_by"))
                for r in fetchall(cur)
            ]

    def _add(self, day: date, reason: Optional[str], created_by: Optional[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO cancelled_days(day, reason, created_by)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE reason=VALUES(reason), created_by=VALUES(created_by)
                """,
                (day, reason, created_by),
            )

    def _remove(self, day: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM cancelled_days WHERE day=%s", (day,))
            return cur.rowcount > 0
