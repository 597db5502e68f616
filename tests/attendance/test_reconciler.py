from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone

import pytest

from builder_attendance.attendance.reconciler import AttendanceReconciler
from builder_attendance.class_calendar.service import ClassCalendar
from builder_attendance.core.constants import NOTE_ABSENT_END_OF_DAY, NOTE_ABSENT_NO_RECORD
from builder_attendance.core.enums import AttendanceStatus
from builder_attendance.core.exceptions import ValidationError

from fakes import InMemoryCancelledDays, make_builder, make_record

DAY = date(2025, 3, 17)
NOW = datetime(2025, 3, 17, 23, 0, tzinfo=timezone.utc)


@pytest.fixture()
def reconciler(builders_repo, attendance_repo, cancelled_days_repo, clock):
    calendar = ClassCalendar(cancelled_days_repo, clock=clock)
    return AttendanceReconciler(builders_repo, attendance_repo, calendar, clock=lambda: NOW)


def test_missing_and_pending_become_absent_and_excusal_is_kept(reconciler, attendance_repo):
    attendance_repo.rows[("B", DAY)] = make_record("B", DAY, AttendanceStatus.PENDING)
    excused = make_record("C", DAY, AttendanceStatus.ABSENT, excuse_reason="doctor")
    attendance_repo.rows[("C", DAY)] = excused

    result = asyncio.run(reconciler.reconcile(DAY))

    assert (result.created, result.updated) == (1, 1)
    assert result.ok

    a = attendance_repo.get("A", DAY)
    assert a.status == AttendanceStatus.ABSENT
    assert a.notes == NOTE_ABSENT_NO_RECORD
    assert a.recorded_at == NOW

    b = attendance_repo.get("B", DAY)
    assert b.status == AttendanceStatus.ABSENT
    assert b.notes == NOTE_ABSENT_END_OF_DAY

    assert attendance_repo.get("C", DAY) is excused


def test_second_run_changes_nothing(reconciler, attendance_repo):
    attendance_repo.rows[("B", DAY)] = make_record("B", DAY, AttendanceStatus.PENDING)

    async def scenario():
        first = await reconciler.reconcile(DAY)
        second = await reconciler.reconcile(DAY)
        return first, second

    first, second = asyncio.run(scenario())

    assert first.changed == 3
    assert (second.created, second.updated) == (0, 0)
    assert len(attendance_repo.writes) == 3


def test_resolved_records_are_left_alone(reconciler, attendance_repo):
    for builder_id, status in (("A", AttendanceStatus.PRESENT), ("B", AttendanceStatus.LATE), ("C", AttendanceStatus.EXCUSED)):
        attendance_repo.rows[(builder_id, DAY)] = make_record(builder_id, DAY, status)

    result = asyncio.run(reconciler.reconcile(DAY))

    assert result.changed == 0
    assert attendance_repo.writes == []


def test_check_in_racing_the_run_is_not_overwritten(reconciler, attendance_repo):
    # B is pending when the ledger is read and checks in before the writes happen.
    attendance_repo.rows[("B", DAY)] = make_record("B", DAY, AttendanceStatus.PENDING)
    original = attendance_repo.list_for_date

    async def read_then_check_in(day):
        records = await original(day)
        attendance_repo.rows[("B", DAY)] = make_record("B", DAY, AttendanceStatus.PRESENT)
        return records

    attendance_repo.list_for_date = read_then_check_in

    result = asyncio.run(reconciler.reconcile(DAY))

    assert attendance_repo.get("B", DAY).status == AttendanceStatus.PRESENT
    assert result.updated == 0
    assert result.created == 2


def test_non_class_day_is_skipped(reconciler, attendance_repo):
    result = asyncio.run(reconciler.reconcile(date(2025, 3, 21)))

    assert result.skipped is True
    assert attendance_repo.writes == []


def test_cancelled_day_is_skipped(builders_repo, attendance_repo, clock):
    calendar = ClassCalendar(InMemoryCancelledDays([DAY]), clock=clock)
    reconciler = AttendanceReconciler(builders_repo, attendance_repo, calendar, clock=lambda: NOW)

    result = asyncio.run(reconciler.reconcile(DAY))

    assert result.skipped is True
    assert attendance_repo.writes == []


def test_one_failed_write_does_not_stop_the_batch(reconciler, attendance_repo):
    attendance_repo.fail_for = {"B"}

    result = asyncio.run(reconciler.reconcile(DAY))

    assert result.created == 2
    assert [f.builder_id for f in result.failures] == ["B"]
    assert result.failures[0].action == "create"
    assert result.ok is False
    assert attendance_repo.get("C", DAY).status == AttendanceStatus.ABSENT


def test_ledger_load_failure_aborts_without_writes(reconciler, attendance_repo):
    attendance_repo.fail_reads = True

    result = asyncio.run(reconciler.reconcile(DAY))

    assert result.error
    assert result.changed == 0
    assert attendance_repo.writes == []


def test_archived_builders_are_not_reconciled(reconciler, builders_repo, attendance_repo):
    builders_repo.builders["D"] = make_builder("D", archived_at=NOW)

    asyncio.run(reconciler.reconcile(DAY))

    assert attendance_repo.get("D", DAY) is None


def test_reconcile_range_aggregates_days(reconciler):
    result = asyncio.run(reconciler.reconcile_range(date(2025, 3, 20), date(2025, 3, 22)))

    assert len(result.days) == 3
    assert result.skipped_days == 1
    assert result.created == 6
    assert result.updated == 0
    assert result.failed_days == ()


def test_reconcile_range_rejects_inverted_dates(reconciler):
    with pytest.raises(ValidationError):
        asyncio.run(reconciler.reconcile_range(date(2025, 3, 22), date(2025, 3, 20)))
