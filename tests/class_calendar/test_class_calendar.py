from __future__ import annotations

import asyncio
from datetime import date

from builder_attendance.class_calendar.service import ClassCalendar, is_class_day

from fakes import InMemoryCancelledDays

MONDAY = date(2025, 3, 17)
TUESDAY = date(2025, 3, 18)
FRIDAY = date(2025, 3, 21)


def test_excluded_weekday_is_not_a_class_day():
    assert is_class_day(FRIDAY) is False
    assert is_class_day(MONDAY) is True


def test_permanent_holiday_is_not_a_class_day():
    # 2025-04-20 is a Sunday, so only the holiday rule applies.
    assert is_class_day(date(2025, 4, 20)) is False
    assert is_class_day(date(2025, 4, 27)) is True


def test_excluded_weekday_is_configurable():
    assert is_class_day(FRIDAY, excluded_weekday=6) is True
    assert is_class_day(date(2025, 3, 23), excluded_weekday=6) is False


def test_cancelled_day_is_not_a_class_day_after_prime(clock):
    repo = InMemoryCancelledDays([TUESDAY])
    calendar = ClassCalendar(repo, clock=clock)

    asyncio.run(calendar.prime())

    assert calendar.is_class_day(TUESDAY) is False
    assert calendar.is_class_day(MONDAY) is True
    assert repo.calls == 1


def test_prime_loads_only_once(clock):
    repo = InMemoryCancelledDays()
    calendar = ClassCalendar(repo, clock=clock)

    async def scenario():
        await calendar.prime()
        await calendar.prime()

    asyncio.run(scenario())
    assert repo.calls == 1


def test_stale_read_answers_from_cache_and_refreshes_in_background(clock):
    repo = InMemoryCancelledDays()
    calendar = ClassCalendar(repo, ttl_seconds=180, clock=clock)

    async def scenario():
        await calendar.prime()
        await repo.add(day=TUESDAY)  # cancelled after the cache was filled

        assert calendar.is_class_day(TUESDAY) is True
        assert repo.calls == 1

        clock.advance(181)
        # Stale: answered immediately from the old set, refresh is scheduled.
        assert calendar.is_class_day(TUESDAY) is True
        for _ in range(5):
            await asyncio.sleep(0)

        assert repo.calls == 2
        assert calendar.is_class_day(TUESDAY) is False

    asyncio.run(scenario())


def test_lookup_failure_keeps_previous_set(clock):
    repo = InMemoryCancelledDays([TUESDAY])
    calendar = ClassCalendar(repo, clock=clock)

    async def scenario():
        await calendar.prime()
        repo.fail = True
        await calendar.refresh(force=True)

    asyncio.run(scenario())

    assert calendar.cancelled_days == frozenset({TUESDAY})
    assert calendar.is_class_day(TUESDAY) is False


def test_lookup_failure_on_first_load_is_not_fatal(clock):
    repo = InMemoryCancelledDays([TUESDAY])
    repo.fail = True
    calendar = ClassCalendar(repo, clock=clock)

    asyncio.run(calendar.prime())

    assert calendar.is_loaded is False
    assert calendar.is_class_day(MONDAY) is True


def test_concurrent_refreshes_share_one_fetch(clock):
    repo = InMemoryCancelledDays([TUESDAY])
    calendar = ClassCalendar(repo, clock=clock)

    async def scenario():
        repo.gate = asyncio.Event()
        first = asyncio.ensure_future(calendar.refresh())
        second = asyncio.ensure_future(calendar.refresh())
        await asyncio.sleep(0)
        repo.gate.set()
        return await asyncio.gather(first, second)

    results = asyncio.run(scenario())

    assert repo.calls == 1
    assert results == [frozenset({TUESDAY}), frozenset({TUESDAY})]


def test_forced_refresh_does_not_reuse_stale_fetch(clock):
    repo = InMemoryCancelledDays()
    calendar = ClassCalendar(repo, clock=clock)

    async def scenario():
        await calendar.prime()
        clock.advance(181)
        repo.gate = asyncio.Event()

        # Background fetch starts and reads the table before the cancellation.
        assert calendar.is_class_day(MONDAY) is True
        await asyncio.sleep(0)
        await repo.add(day=MONDAY)

        forced = asyncio.ensure_future(calendar.refresh(force=True))
        await asyncio.sleep(0)
        repo.gate.set()
        await forced

        return calendar.is_class_day(MONDAY), calendar.is_stale

    is_class, is_stale = asyncio.run(scenario())

    assert is_class is False
    assert is_stale is False
    assert repo.calls == 3


def test_cancel_day_during_background_fetch_keeps_cache_stale(clock):
    repo = InMemoryCancelledDays()
    calendar = ClassCalendar(repo, clock=clock)

    async def scenario():
        await calendar.prime()
        clock.advance(181)
        repo.gate = asyncio.Event()

        assert calendar.is_class_day(MONDAY) is True
        await asyncio.sleep(0)
        await calendar.cancel_day(MONDAY, reason="Hackathon")
        repo.gate.set()
        for _ in range(5):
            await asyncio.sleep(0)

        # The fetch finished, but it read the table before the cancellation.
        assert repo.calls == 2
        assert calendar.is_stale is True

        await calendar.refresh()
        return calendar.is_class_day(MONDAY)

    assert asyncio.run(scenario()) is False
    assert repo.calls == 3


def test_read_without_event_loop_does_not_raise(clock):
    calendar = ClassCalendar(InMemoryCancelledDays(), clock=clock)

    assert calendar.is_stale is True
    assert calendar.is_class_day(MONDAY) is True


def test_cancel_and_restore_day_invalidate_cache(clock):
    repo = InMemoryCancelledDays()
    calendar = ClassCalendar(repo, clock=clock)

    async def scenario():
        await calendar.prime()
        await calendar.cancel_day(TUESDAY, reason="Hackathon", created_by="staff")
        assert calendar.is_stale is True
        await calendar.refresh()
        cancelled = calendar.is_class_day(TUESDAY)

        restored = await calendar.restore_day(TUESDAY)
        await calendar.refresh()
        return cancelled, restored, calendar.is_class_day(TUESDAY)

    cancelled, restored, after_restore = asyncio.run(scenario())

    assert cancelled is False
    assert restored is True
    assert after_restore is True
    assert repo.calls == 3


def test_class_days_in_range(clock):
    repo = InMemoryCancelledDays([TUESDAY])
    calendar = ClassCalendar(repo, clock=clock)
    asyncio.run(calendar.prime())

    days = list(calendar.class_days(date(2025, 3, 15), date(2025, 3, 22)))

    assert TUESDAY not in days
    assert FRIDAY not in days
    assert len(days) == 6
