"""Example: drive the engine as a library (no web layer).

Reconciles yesterday, prints the day summary, then listens for attendance
changes for a minute.
"""

import asyncio
from datetime import date, timedelta

from builder_attendance.main import create_engine


async def run() -> None:
    engine = create_engine()

    yesterday = date.today() - timedelta(days=1)
    result = await engine.reconciler.reconcile(yesterday)
    print(f"{yesterday}: created={result.created} updated={result.updated} skipped={result.skipped}")

    summary = await engine.report_service.daily_summary(yesterday)
    print(f"roster={summary.roster_size} attended={summary.attended} rate={summary.rate}")

    unsubscribe = engine.notifications.subscribe(lambda: print("attendance changed"))
    try:
        await asyncio.sleep(60)
    finally:
        unsubscribe()
        engine.notifications.close()


if __name__ == "__main__":
    asyncio.run(run())
