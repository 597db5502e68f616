from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class CancelledDay:
    """A one-off cancellation entered by staff (no class on ``day``)."""

    day: date
    reason: Optional[str] = None
    created_by: Optional[str] = None
