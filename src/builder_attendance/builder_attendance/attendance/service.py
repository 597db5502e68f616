from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..builders.repository import BuilderRepository
from ..common.datetime_utils import now_utc
from ..common.validators import blank_to_none, require_non_empty
from ..core.enums import AttendanceStatus, WriteOutcome
from ..core.exceptions import ValidationError
from .model import AttendanceRecord, BuilderDay, is_automated_note
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_RESOLVING_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.EXCUSED)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        builders: BuilderRepository,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._attendance = attendance
        self._builders = builders
        self._clock = clock

    async def mark_status(
        self,
        builder_id: str,
        day: date,
        status: AttendanceStatus,
        *,
        excuse_reason: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> WriteOutcome:
        """Staff edit of one builder's attendance on ``day``.

        ``excused`` needs a reason; ``absent`` may carry one (an excused absence
        that reconciliation will never overwrite). Other statuses drop the reason.
        """
        now = now or self._clock()
        status = AttendanceStatus(status)

        if status == AttendanceStatus.EXCUSED:
            reason = require_non_empty(excuse_reason, "Excuse reason")
        elif status == AttendanceStatus.ABSENT:
            reason = blank_to_none(excuse_reason)
        else:
            reason = None

        builder = await self._builders.get_by_id(builder_id)
        if not builder:
            raise ValidationError(f"Builder {builder_id} does not exist")

        existing = await self._attendance.get_for_builder_and_date(builder_id, day)
        final_notes = self._merge_notes(existing, status, blank_to_none(notes))

        outcome = await self._attendance.upsert(
            AttendanceRecord(
                builder_id=builder_id,
                day=day,
                status=status,
                recorded_at=now,
                notes=final_notes,
                excuse_reason=reason,
            )
        )
        logger.info("Marked %s as %s on %s (%s)", builder_id, status.value, day.isoformat(), outcome.value)
        return outcome

    async def record_check_in(self, builder_id: str, *, at: datetime) -> WriteOutcome:
        """Mark ``builder_id`` present for ``at.date()`` after a recognized capture.

        Returns ``UNCHANGED`` when the builder is already present or late that day.
        Raises ``DatastoreError`` when the write fails.
        """
        day = at.date()
        existing = await self._attendance.get_for_builder_and_date(builder_id, day)
        if existing and existing.status.counts_as_attended:
            return WriteOutcome.UNCHANGED

        return await self._attendance.upsert(
            AttendanceRecord(
                builder_id=builder_id,
                day=day,
                status=AttendanceStatus.PRESENT,
                recorded_at=at,
                notes=self._merge_notes(existing, AttendanceStatus.PRESENT, None),
                excuse_reason=None,
            )
        )

    async def roster_for_date(self, day: date, *, cohort: Optional[str] = None) -> list[BuilderDay]:
        """Every active builder merged with their attendance on ``day`` (missing = pending)."""
        roster = await self._builders.list_roster(cohort=cohort)
        records = {r.builder_id: r for r in await self._attendance.list_for_date(day)}

        rows: list[BuilderDay] = []
        for builder in roster:
            record = records.get(builder.builder_id)
            rows.append(
                BuilderDay(
                    builder_id=builder.builder_id,
                    display_name=builder.display_name,
                    cohort=builder.cohort,
                    day=day,
                    status=record.effective_status if record else AttendanceStatus.PENDING,
                    recorded_at=record.recorded_at if record else None,
                    notes=record.notes if record else None,
                    excuse_reason=record.excuse_reason if record else None,
                )
            )
        return rows

    async def history(
        self,
        builder_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        return await self._attendance.list_for_builder(builder_id, start=start, end=end)

    async def clear_automated_notes(self, day: date) -> int:
        """Drop system absence notes from rows that were later resolved by a person.

        Excused rows keep their excuse reason as the note.
        """
        now = self._clock()
        cleared = 0
        for record in await self._attendance.list_for_date(day):
            if record.status not in _RESOLVING_STATUSES or not record.has_automated_note:
                continue

            notes = record.excuse_reason if record.status == AttendanceStatus.EXCUSED else None
            if await self._attendance.update_notes(
                builder_id=record.builder_id,
                day=day,
                notes=blank_to_none(notes),
                recorded_at=now,
            ):
                cleared += 1

        if cleared:
            logger.info("Cleared %d automated notes on %s", cleared, day.isoformat())
        return cleared

    @staticmethod
    def _merge_notes(
        existing: Optional[AttendanceRecord],
        status: AttendanceStatus,
        notes: Optional[str],
    ) -> Optional[str]:
        if notes is not None:
            return notes
        previous = existing.notes if existing else None
        if status in _RESOLVING_STATUSES and is_automated_note(previous):
            return None
        return previous
