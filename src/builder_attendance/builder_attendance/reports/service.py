from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..attendance.rate_calculator import AttendanceRateCalculator, percent
from ..attendance.model import AttendanceRate, AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..attendance.service import AttendanceService
from ..builders.repository import BuilderRepository
from ..class_calendar.service import ClassCalendar
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class DailySummary:
    day: date
    is_class_day: bool
    roster_size: int
    counts: dict[AttendanceStatus, int]
    rate: Optional[int]

    @property
    def attended(self) -> int:
        return self.counts.get(AttendanceStatus.PRESENT, 0) + self.counts.get(AttendanceStatus.LATE, 0)


class AttendanceReportService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        builders: BuilderRepository,
        attendance_service: AttendanceService,
        calendar: ClassCalendar,
        *,
        calculator: Optional[AttendanceRateCalculator] = None,
    ):
        self._attendance = attendance
        self._builders = builders
        self._attendance_service = attendance_service
        self._calendar = calendar
        self._calculator = calculator or AttendanceRateCalculator(calendar)

    async def builder_rates(
        self,
        *,
        as_of: date,
        epoch_start: Optional[date] = None,
        cohort: Optional[str] = None,
    ) -> dict[str, AttendanceRate]:
        """Attendance rate of every active builder from the epoch up to ``as_of``."""
        await self._calendar.prime()
        roster = await self._builders.list_roster(cohort=cohort)

        by_builder: dict[str, list[AttendanceRecord]] = {b.builder_id: [] for b in roster}
        start = epoch_start or self._calculator.epoch_start
        if start <= as_of:
            for r in await self._attendance.list_range(start=start, end=as_of):
                if r.builder_id in by_builder:
                    by_builder[r.builder_id].append(r)

        return self._calculator.compute_rates(by_builder, as_of=as_of, epoch_start=epoch_start)

    async def daily_summary(self, day: date, cohort: Optional[str] = None) -> DailySummary:
        await self._calendar.prime()
        rows = await self._attendance_service.roster_for_date(day, cohort=cohort)

        counts: Counter[AttendanceStatus] = Counter({s: 0 for s in AttendanceStatus})
        for row in rows:
            counts[row.status] += 1

        attended = counts[AttendanceStatus.PRESENT] + counts[AttendanceStatus.LATE]
        rate = percent(attended, len(rows)) if rows else None

        return DailySummary(
            day=day,
            is_class_day=self._calendar.is_class_day(day),
            roster_size=len(rows),
            counts=dict(counts),
            rate=rate,
        )
