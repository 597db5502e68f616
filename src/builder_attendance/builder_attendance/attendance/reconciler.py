from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime
from typing import Callable, Sequence

from ..builders.repository import BuilderRepository
from ..class_calendar.service import ClassCalendar
from ..common.datetime_utils import iter_dates, now_utc
from ..core.constants import NOTE_ABSENT_END_OF_DAY, NOTE_ABSENT_NO_RECORD
from ..core.enums import AttendanceStatus, WriteOutcome
from ..core.exceptions import DatastoreError, ValidationError
from .model import RangeReconcileResult, ReconcileFailure, ReconcileResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceReconciler:
    """Converges a class day's ledger: every roster builder ends with a final status.

    - no record            -> created as absent
    - pending              -> updated to absent
    - anything else        -> untouched (includes absent with an excuse reason)

    Writes go through ``mark_absent_if_unresolved``, which re-checks the row
    atomically, so concurrent runs (or a check-in racing the run) never
    overwrite a resolved record. Running it twice yields no further changes.
    """

    def __init__(
        self,
        builders: BuilderRepository,
        attendance: AttendanceRepository,
        calendar: ClassCalendar,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._builders = builders
        self._attendance = attendance
        self._calendar = calendar
        self._clock = clock

    async def reconcile(self, day: date) -> ReconcileResult:
        await self._calendar.prime()
        if not self._calendar.is_class_day(day):
            logger.info("Skipping reconciliation for %s: not a class day", day.isoformat())
            return ReconcileResult(day=day, skipped=True)

        try:
            roster = await self._builders.list_roster()
            records = await self._attendance.list_for_date(day)
        except DatastoreError as e:
            logger.error("Reconciliation for %s aborted, cannot load ledger: %s", day.isoformat(), e)
            return ReconcileResult(day=day, error=str(e))

        existing = {r.builder_id: r for r in records}
        to_create: list[str] = []
        to_update: list[str] = []

        for builder in roster:
            record = existing.get(builder.builder_id)
            if record is None:
                to_create.append(builder.builder_id)
            elif record.status == AttendanceStatus.PENDING:
                to_update.append(builder.builder_id)

        now = self._clock()
        failures: list[ReconcileFailure] = []
        outcomes: Counter[WriteOutcome] = Counter()

        outcomes += await self._apply(day, to_create, "create", NOTE_ABSENT_NO_RECORD, now, failures)
        outcomes += await self._apply(day, to_update, "update", NOTE_ABSENT_END_OF_DAY, now, failures)

        result = ReconcileResult(
            day=day,
            created=outcomes[WriteOutcome.CREATED],
            updated=outcomes[WriteOutcome.UPDATED],
            failures=tuple(failures),
        )
        logger.info(
            "Reconciled %s: roster=%d created=%d updated=%d failed=%d",
            day.isoformat(),
            len(roster),
            result.created,
            result.updated,
            len(failures),
        )
        return result

    async def reconcile_range(self, start: date, end: date) -> RangeReconcileResult:
        """Historical processing: reconcile every day in ``[start, end]``."""
        if start > end:
            raise ValidationError("Start date must be before or equal to end date")

        days = []
        for day in iter_dates(start, end):
            days.append(await self.reconcile(day))

        result = RangeReconcileResult(start=start, end=end, days=tuple(days))
        logger.info(
            "Historical reconciliation %s..%s: created=%d updated=%d skipped_days=%d failures=%d",
            start.isoformat(),
            end.isoformat(),
            result.created,
            result.updated,
            result.skipped_days,
            len(result.failures),
        )
        return result

    async def _apply(
        self,
        day: date,
        builder_ids: Sequence[str],
        action: str,
        notes: str,
        now: datetime,
        failures: list[ReconcileFailure],
    ) -> Counter[WriteOutcome]:
        outcomes: Counter[WriteOutcome] = Counter()
        for builder_id in builder_ids:
            try:
                outcome = await self._attendance.mark_absent_if_unresolved(
                    builder_id=builder_id,
                    day=day,
                    notes=notes,
                    recorded_at=now,
                )
            except DatastoreError as e:
                logger.warning("Could not %s absence for %s on %s: %s", action, builder_id, day.isoformat(), e)
                failures.append(ReconcileFailure(builder_id=builder_id, action=action, message=str(e)))
                continue
            except Exception as e:
                # One bad row must not abort the rest of the batch.
                logger.exception("Unexpected error reconciling %s on %s", builder_id, day.isoformat())
                failures.append(ReconcileFailure(builder_id=builder_id, action=action, message=repr(e)))
                continue

            outcomes[outcome] += 1
        return outcomes
