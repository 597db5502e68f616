from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import as_utc, to_naive_utc
from ..core.enums import AttendanceStatus, WriteOutcome
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, run_blocking
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = "builder_id, day, status, recorded_at, notes, excuse_reason"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        builder_id=str(r["builder_id"]),
        day=r["day"],
        status=AttendanceStatus(r["status"]),
        recorded_at=as_utc(r.get("recorded_at")),
        notes=r.get("notes"),
        excuse_reason=r.get("excuse_reason"),
    )


def _outcome(rowcount: int) -> WriteOutcome:
    # ON DUPLICATE KEY UPDATE affected rows: 1 inserted, 2 updated, 0 untouched.
    if rowcount == 1:
        return WriteOutcome.CREATED
    if rowcount >= 2:
        return WriteOutcome.UPDATED
    return WriteOutcome.UNCHANGED


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_for_date(self, day: date) -> Sequence[AttendanceRecord]:
        return await run_blocking(self._list_where, "day=%s", (day,))

    async def list_for_builder(
        self,
        builder_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["builder_id=%s"]
        params: list[object] = [builder_id]
        if start is not None:
            clauses.append("day >= %s")
            params.append(start)
        if end is not None:
            clauses.append("day <= %s")
            params.append(end)
        return await run_blocking(self._list_where, " AND ".join(clauses), tuple(params))

    async def list_range(self, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        return await run_blocking(self._list_where, "day BETWEEN %s AND %s", (start, end))

    async def get_for_builder_and_date(self, builder_id: str, day: date) -> Optional[AttendanceRecord]:
        return await run_blocking(self._get_for_builder_and_date, builder_id, day)

    async def upsert(self, record: AttendanceRecord) -> WriteOutcome:
        return await run_blocking(self._upsert, record)

    async def mark_absent_if_unresolved(
        self,
        *,
        builder_id: str,
        day: date,
        notes: str,
        recorded_at: datetime,
    ) -> WriteOutcome:
        return await run_blocking(self._mark_absent_if_unresolved, builder_id, day, notes, recorded_at)

    async def update_notes(self, *, builder_id: str, day: date, notes: Optional[str], recorded_at: datetime) -> bool:
        return await run_blocking(self._update_notes, builder_id, day, notes, recorded_at)

    def _list_where(self, where: str, params: tuple) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE {where}
                ORDER BY day DESC, builder_id ASC
                """,
                params,
            )
            return [_to_record(r) for r in fetchall(cur)]

    def _get_for_builder_and_date(self, builder_id: str, day: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE builder_id=%s AND day=%s",
                (builder_id, day),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def _upsert(self, record: AttendanceRecord) -> WriteOutcome:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(builder_id, day, status, recorded_at, notes, excuse_reason)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status),
                    recorded_at=VALUES(recorded_at),
                    notes=VALUES(notes),
                    excuse_reason=VALUES(excuse_reason)
                """,
                (
                    record.builder_id,
                    record.day,
                    record.status.value,
                    to_naive_utc(record.recorded_at),
                    record.notes,
                    record.excuse_reason,
                ),
            )
            return _outcome(cur.rowcount)

    def _mark_absent_if_unresolved(self, builder_id: str, day: date, notes: str, recorded_at: datetime) -> WriteOutcome:
        # Assignments run left to right: status must be rewritten last so the
        # IF() guards above it still see the old value.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(builder_id, day, status, recorded_at, notes)
                VALUES(%s,%s,'absent',%s,%s)
                ON DUPLICATE KEY UPDATE
                    recorded_at=IF(status='pending', VALUES(recorded_at), recorded_at),
                    notes=IF(status='pending', VALUES(notes), notes),
                    status=IF(status='pending', 'absent', status)
                """,
                (builder_id, day, to_naive_utc(recorded_at), notes),
            )
            return _outcome(cur.rowcount)

    def _update_notes(self, builder_id: str, day: date, notes: Optional[str], recorded_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET notes=%s, recorded_at=%s
                WHERE builder_id=%s AND day=%s
                """,
                (notes, to_naive_utc(recorded_at), builder_id, day),
            )
            return cur.rowcount > 0
