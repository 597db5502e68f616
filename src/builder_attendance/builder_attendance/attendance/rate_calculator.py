from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping, Optional, Protocol

from ..common.datetime_utils import iter_dates
from ..core.constants import DEFAULT_EPOCH_START
from ..core.exceptions import ValidationError
from .model import AttendanceRate, AttendanceRecord


def percent(part: int, whole: int) -> int:
    """Integer percentage rounded half up (12.5 -> 13)."""
    return (part * 200 + whole) // (2 * whole)


class ClassDayRule(Protocol):
    def is_class_day(self, day: date) -> bool:
        raise NotImplementedError


class AttendanceRateCalculator:
    """Attendance rate = distinct present/late class days over class days in range.

    Deterministic: nothing here reads the wall clock, ``as_of`` is always explicit.
    """

    def __init__(self, calendar: ClassDayRule, *, epoch_start: date = DEFAULT_EPOCH_START):
        self._calendar = calendar
        self._epoch_start = epoch_start

    @property
    def epoch_start(self) -> date:
        return self._epoch_start

    def compute_rate(
        self,
        builder_id: str,
        records: Iterable[AttendanceRecord],
        *,
        as_of: date,
        epoch_start: Optional[date] = None,
        calendar: Optional[ClassDayRule] = None,
    ) -> AttendanceRate:
        calendar = calendar or self._calendar
        start = epoch_start or self._epoch_start

        class_days = self._class_days(calendar, start, as_of)
        total = len(class_days)

        attended = {
            r.day
            for r in records
            if r.builder_id == builder_id and r.day in class_days and r.status.counts_as_attended
        }
        present = len(attended)

        return AttendanceRate(
            rate=self._rate(present, total),
            present_count=present,
            total_class_days=total,
        )

    def compute_rates(
        self,
        records_by_builder: Mapping[str, Iterable[AttendanceRecord]],
        *,
        as_of: date,
        epoch_start: Optional[date] = None,
    ) -> dict[str, AttendanceRate]:
        return {
            builder_id: self.compute_rate(builder_id, records, as_of=as_of, epoch_start=epoch_start)
            for builder_id, records in records_by_builder.items()
        }

    @staticmethod
    def _class_days(calendar: ClassDayRule, start: date, end: date) -> frozenset[date]:
        return frozenset(day for day in iter_dates(start, end) if calendar.is_class_day(day))

    @staticmethod
    def _rate(present: int, total: int) -> Optional[int]:
        if total < 0 or present < 0:
            raise ValidationError("Attendance counts cannot be negative")
        if total == 0:
            return None
        if present >= total:
            return 100
        return percent(present, total)
