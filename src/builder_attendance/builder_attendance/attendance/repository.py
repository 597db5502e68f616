from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import WriteOutcome
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    async def list_for_date(self, day: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def list_for_builder(
        self,
        builder_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def list_range(self, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def get_for_builder_and_date(self, builder_id: str, day: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    async def upsert(self, record: AttendanceRecord) -> WriteOutcome:
        """Atomic insert-or-update keyed on (builder_id, day)."""

        raise NotImplementedError

    async def mark_absent_if_unresolved(
        self,
        *,
        builder_id: str,
        day: date,
        notes: str,
        recorded_at: datetime,
    ) -> WriteOutcome:
        """Atomic conditional upsert used by reconciliation.

        Inserts an absent row when none exists, turns a pending row into absent,
        and leaves any other row untouched (``WriteOutcome.UNCHANGED``).
        """

        raise NotImplementedError

    async def update_notes(self, *, builder_id: str, day: date, notes: Optional[str], recorded_at: datetime) -> bool:
        raise NotImplementedError
