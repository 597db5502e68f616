from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fakes import FakeClock, InMemoryAttendance, InMemoryBuilders, InMemoryCancelledDays, make_builder


@pytest.fixture()
def fixed_now() -> datetime:
    # Monday
    return datetime(2025, 3, 17, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def builders_repo():
    return InMemoryBuilders([make_builder("A"), make_builder("B"), make_builder("C")])


@pytest.fixture()
def attendance_repo():
    return InMemoryAttendance()


@pytest.fixture()
def cancelled_days_repo():
    return InMemoryCancelledDays()


@pytest.fixture()
def clock():
    return FakeClock()
