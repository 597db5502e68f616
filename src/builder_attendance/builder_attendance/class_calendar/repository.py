from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import CancelledDay


class CancelledDayRepository(Protocol):
    async def list_cancelled_days(self) -> Sequence[CancelledDay]:
        raise NotImplementedError

    async def add(self, *, day: date, reason: Optional[str] = None, created_by: Optional[str] = None) -> None:
        """Insert or update the cancellation for ``day``."""

        raise NotImplementedError

    async def remove(self, *, day: date) -> bool:
        raise NotImplementedError
