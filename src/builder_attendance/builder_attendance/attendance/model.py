from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.constants import AUTOMATED_NOTE_MARKERS
from ..core.enums import AttendanceStatus


def is_automated_note(notes: Optional[str]) -> bool:
    if not notes:
        return False
    lowered = notes.lower()
    return any(marker in lowered for marker in AUTOMATED_NOTE_MARKERS)


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance row per (builder, day)."""

    builder_id: str
    day: date
    status: AttendanceStatus
    recorded_at: Optional[datetime] = None
    notes: Optional[str] = None
    excuse_reason: Optional[str] = None

    @property
    def is_manual_excusal(self) -> bool:
        """Absent with a staff-entered reason; automated processing must not touch it."""
        return self.status == AttendanceStatus.ABSENT and bool(self.excuse_reason and self.excuse_reason.strip())

    @property
    def effective_status(self) -> AttendanceStatus:
        if self.is_manual_excusal:
            return AttendanceStatus.EXCUSED
        return self.status

    @property
    def has_automated_note(self) -> bool:
        return is_automated_note(self.notes)


@dataclass(frozen=True)
class AttendanceRate:
    """Attendance statistics for one builder over ``[epoch_start, as_of]``.

    ``rate`` is ``None`` when there are no class days in range ("no data").
    """

    rate: Optional[int]
    present_count: int
    total_class_days: int

    @property
    def has_data(self) -> bool:
        return self.rate is not None


@dataclass(frozen=True)
class ReconcileFailure:
    builder_id: str
    action: str
    message: str


@dataclass(frozen=True)
class ReconcileResult:
    day: date
    created: int = 0
    updated: int = 0
    skipped: bool = False
    failures: tuple[ReconcileFailure, ...] = ()
    error: Optional[str] = None

    @property
    def changed(self) -> int:
        return self.created + self.updated

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failures


@dataclass(frozen=True)
class RangeReconcileResult:
    start: date
    end: date
    days: tuple[ReconcileResult, ...] = field(default_factory=tuple)

    @property
    def created(self) -> int:
        return sum(d.created for d in self.days)

    @property
    def updated(self) -> int:
        return sum(d.updated for d in self.days)

    @property
    def skipped_days(self) -> int:
        return sum(1 for d in self.days if d.skipped)

    @property
    def failures(self) -> tuple[ReconcileFailure, ...]:
        return tuple(f for d in self.days for f in d.failures)

    @property
    def failed_days(self) -> tuple[date, ...]:
        return tuple(d.day for d in self.days if d.error is not None)


@dataclass(frozen=True)
class BuilderDay:
    """Read-model: a roster row merged with its attendance for one day."""

    builder_id: str
    display_name: str
    cohort: str
    day: date
    status: AttendanceStatus
    recorded_at: Optional[datetime] = None
    notes: Optional[str] = None
    excuse_reason: Optional[str] = None
