from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from builder_attendance.attendance.service import AttendanceService
from builder_attendance.core.enums import AttendanceStatus, CheckInStatus
from builder_attendance.recognition.history import RecognitionHistory
from builder_attendance.recognition.matcher import IdentityMatcher
from builder_attendance.recognition.model import FaceSignature
from builder_attendance.recognition.service import RecognitionService

from fakes import InMemorySignatures

DAY = date(2025, 3, 17)
FACE_A = (1.0, 0.0, 0.0)
FACE_B = (0.0, 1.0, 0.0)


@pytest.fixture()
def signatures():
    return InMemorySignatures(
        [
            FaceSignature(builder_id="A", vector=FACE_A),
            FaceSignature(builder_id="B", vector=FACE_B),
        ]
    )


@pytest.fixture()
def matcher():
    history = RecognitionHistory(retention=timedelta(seconds=10))
    return IdentityMatcher(history, threshold=0.5, cooldown=timedelta(seconds=10))


@pytest.fixture()
def service(signatures, attendance_repo, builders_repo, matcher, fixed_now):
    attendance = AttendanceService(attendance_repo, builders_repo, clock=lambda: fixed_now)
    return RecognitionService(signatures, attendance, matcher, timeout_seconds=0.2, clock=lambda: fixed_now)


def test_recognized_face_is_checked_in(service, attendance_repo, fixed_now):
    result = asyncio.run(service.check_in([0.95, 0.05, 0.0]))

    assert result.status == CheckInStatus.CHECKED_IN
    assert result.builder_id == "A"
    assert result.succeeded
    record = attendance_repo.get("A", DAY)
    assert record.status == AttendanceStatus.PRESENT
    assert record.recorded_at == fixed_now


def test_repeat_within_cooldown_is_suppressed_without_writes(service, attendance_repo, fixed_now):
    async def scenario():
        first = await service.check_in(FACE_A, now=fixed_now)
        second = await service.check_in(FACE_A, now=fixed_now + timedelta(seconds=3))
        return first, second

    first, second = asyncio.run(scenario())

    assert first.status == CheckInStatus.CHECKED_IN
    assert second.status == CheckInStatus.RECENTLY_MATCHED
    assert second.builder_id == "A"
    assert len(attendance_repo.writes) == 1


def test_repeat_after_cooldown_is_already_recorded(service, attendance_repo, fixed_now):
    async def scenario():
        await service.check_in(FACE_A, now=fixed_now)
        return await service.check_in(FACE_A, now=fixed_now + timedelta(seconds=30))

    result = asyncio.run(scenario())

    assert result.status == CheckInStatus.ALREADY_RECORDED
    assert len(attendance_repo.writes) == 1


def test_unknown_face_is_no_match(service, attendance_repo):
    result = asyncio.run(service.check_in([0.0, 0.0, 1.0]))

    assert result.status == CheckInStatus.NO_MATCH
    assert result.distance == pytest.approx(2 ** 0.5)
    assert attendance_repo.writes == []


def test_no_enrolled_signatures(service, signatures):
    signatures.signatures = []

    result = asyncio.run(service.check_in(FACE_A))

    assert result.status == CheckInStatus.NO_ENROLLED_SIGNATURES


def test_malformed_capture_fails_only_that_attempt(service):
    async def scenario():
        bad = await service.check_in([float("nan"), 0.0, 0.0])
        good = await service.check_in(FACE_B)
        return bad, good

    bad, good = asyncio.run(scenario())

    assert bad.status == CheckInStatus.FAILED
    assert good.status == CheckInStatus.CHECKED_IN


def test_signature_load_failure_is_failed(service, signatures):
    signatures.fail = True

    result = asyncio.run(service.check_in(FACE_A))

    assert result.status == CheckInStatus.FAILED


def test_write_failure_is_failed_and_not_remembered(service, attendance_repo, matcher, fixed_now):
    attendance_repo.fail_for = {"A"}

    result = asyncio.run(service.check_in(FACE_A))

    assert result.status == CheckInStatus.FAILED
    assert result.builder_id == "A"
    assert result.message
    assert matcher.should_suppress("A", fixed_now) is False


def test_timeout_is_reported_and_releases_guard(service, signatures):
    signatures.delay = 1.0

    async def scenario():
        timed_out = await service.check_in(FACE_A)
        busy_after = service.busy
        signatures.delay = 0.0
        retry = await service.check_in(FACE_A)
        return timed_out, busy_after, retry

    timed_out, busy_after, retry = asyncio.run(scenario())

    assert timed_out.status == CheckInStatus.TIMED_OUT
    assert busy_after is False
    assert retry.status == CheckInStatus.CHECKED_IN


def test_overlapping_check_in_is_busy(service, signatures):
    signatures.delay = 0.05

    async def scenario():
        return await asyncio.gather(service.check_in(FACE_A), service.check_in(FACE_B))

    first, second = asyncio.run(scenario())

    assert first.status == CheckInStatus.CHECKED_IN
    assert second.status == CheckInStatus.BUSY


def test_scan_processes_frames_in_order(service, attendance_repo):
    async def frames():
        for frame in (FACE_A, FACE_A, [0.0, 0.0, 1.0], FACE_B):
            yield frame

    async def scenario():
        return [r.status async for r in service.scan(frames())]

    statuses = asyncio.run(scenario())

    assert statuses == [
        CheckInStatus.CHECKED_IN,
        CheckInStatus.RECENTLY_MATCHED,
        CheckInStatus.NO_MATCH,
        CheckInStatus.CHECKED_IN,
    ]
    assert attendance_repo.get("B", DAY).status == AttendanceStatus.PRESENT
