from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import CheckInStatus, MatchReason


@dataclass(frozen=True)
class FaceSignature:
    """A unit-length face embedding owned by one builder."""

    builder_id: str
    vector: tuple[float, ...]
    signature_id: Optional[int] = None

    @property
    def dimensions(self) -> int:
        return len(self.vector)


@dataclass(frozen=True)
class MatchResult:
    reason: MatchReason
    builder_id: Optional[str] = None
    distance: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.reason == MatchReason.MATCHED


@dataclass(frozen=True)
class CheckInResult:
    status: CheckInStatus
    builder_id: Optional[str] = None
    distance: Optional[float] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (CheckInStatus.CHECKED_IN, CheckInStatus.ALREADY_RECORDED)
