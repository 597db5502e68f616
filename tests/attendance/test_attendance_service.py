from __future__ import annotations

import asyncio
from datetime import date

import pytest

from builder_attendance.attendance.service import AttendanceService
from builder_attendance.core.constants import NOTE_ABSENT_END_OF_DAY, NOTE_ABSENT_NO_RECORD
from builder_attendance.core.enums import AttendanceStatus, WriteOutcome
from builder_attendance.core.exceptions import ValidationError

from fakes import make_record

DAY = date(2025, 3, 17)


@pytest.fixture()
def service(attendance_repo, builders_repo, fixed_now):
    return AttendanceService(attendance_repo, builders_repo, clock=lambda: fixed_now)


def test_excused_requires_reason(service):
    with pytest.raises(ValidationError):
        asyncio.run(service.mark_status("A", DAY, AttendanceStatus.EXCUSED, excuse_reason="  "))


def test_unknown_builder_is_rejected(service):
    with pytest.raises(ValidationError):
        asyncio.run(service.mark_status("nobody", DAY, AttendanceStatus.PRESENT))


def test_excusing_clears_automated_absence_note(service, attendance_repo):
    attendance_repo.rows[("A", DAY)] = make_record("A", DAY, AttendanceStatus.ABSENT, notes=NOTE_ABSENT_NO_RECORD)

    outcome = asyncio.run(service.mark_status("A", DAY, AttendanceStatus.EXCUSED, excuse_reason="Family event"))

    record = attendance_repo.get("A", DAY)
    assert outcome == WriteOutcome.UPDATED
    assert record.status == AttendanceStatus.EXCUSED
    assert record.excuse_reason == "Family event"
    assert record.notes is None


def test_absent_may_keep_an_excuse_reason(service, attendance_repo):
    asyncio.run(service.mark_status("A", DAY, AttendanceStatus.ABSENT, excuse_reason="doctor"))

    record = attendance_repo.get("A", DAY)
    assert record.is_manual_excusal
    assert record.effective_status == AttendanceStatus.EXCUSED


def test_present_drops_excuse_reason_and_keeps_staff_note(service, attendance_repo):
    attendance_repo.rows[("A", DAY)] = make_record(
        "A", DAY, AttendanceStatus.ABSENT, notes="Called in", excuse_reason="doctor"
    )

    asyncio.run(service.mark_status("A", DAY, AttendanceStatus.PRESENT))

    record = attendance_repo.get("A", DAY)
    assert record.excuse_reason is None
    assert record.notes == "Called in"


def test_check_in_marks_present(service, attendance_repo, fixed_now):
    attendance_repo.rows[("A", DAY)] = make_record("A", DAY, AttendanceStatus.PENDING, notes=NOTE_ABSENT_END_OF_DAY)

    outcome = asyncio.run(service.record_check_in("A", at=fixed_now))

    record = attendance_repo.get("A", DAY)
    assert outcome == WriteOutcome.UPDATED
    assert record.status == AttendanceStatus.PRESENT
    assert record.recorded_at == fixed_now
    assert record.notes is None


def test_check_in_when_already_present_is_unchanged(service, attendance_repo, fixed_now):
    attendance_repo.rows[("A", DAY)] = make_record("A", DAY, AttendanceStatus.LATE)

    outcome = asyncio.run(service.record_check_in("A", at=fixed_now))

    assert outcome == WriteOutcome.UNCHANGED
    assert attendance_repo.get("A", DAY).status == AttendanceStatus.LATE


def test_roster_for_date_fills_missing_as_pending(service, attendance_repo):
    attendance_repo.rows[("A", DAY)] = make_record("A", DAY, AttendanceStatus.PRESENT)
    attendance_repo.rows[("B", DAY)] = make_record("B", DAY, AttendanceStatus.ABSENT, excuse_reason="doctor")

    rows = {r.builder_id: r for r in asyncio.run(service.roster_for_date(DAY))}

    assert rows["A"].status == AttendanceStatus.PRESENT
    assert rows["B"].status == AttendanceStatus.EXCUSED
    assert rows["C"].status == AttendanceStatus.PENDING
    assert rows["C"].recorded_at is None


def test_clear_automated_notes(service, attendance_repo):
    attendance_repo.rows[("A", DAY)] = make_record("A", DAY, AttendanceStatus.PRESENT, notes=NOTE_ABSENT_NO_RECORD)
    attendance_repo.rows[("B", DAY)] = make_record(
        "B", DAY, AttendanceStatus.EXCUSED, notes="Auto marked absent", excuse_reason="Flight delayed"
    )
    attendance_repo.rows[("C", DAY)] = make_record("C", DAY, AttendanceStatus.ABSENT, notes=NOTE_ABSENT_NO_RECORD)

    cleared = asyncio.run(service.clear_automated_notes(DAY))

    assert cleared == 2
    assert attendance_repo.get("A", DAY).notes is None
    assert attendance_repo.get("B", DAY).notes == "Flight delayed"
    assert attendance_repo.get("C", DAY).notes == NOTE_ABSENT_NO_RECORD


def test_history_is_newest_first(service, attendance_repo):
    attendance_repo.rows[("A", DAY)] = make_record("A", DAY, AttendanceStatus.PRESENT)
    attendance_repo.rows[("A", date(2025, 3, 18))] = make_record("A", date(2025, 3, 18), AttendanceStatus.LATE)

    records = asyncio.run(service.history("A"))

    assert [r.day for r in records] == [date(2025, 3, 18), DAY]
