from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import AsyncIterable, AsyncIterator, Callable, Iterable, Optional, Sequence, Union

from ..attendance.service import AttendanceService
from ..common.datetime_utils import now_utc
from ..core import constants
from ..core.enums import CheckInStatus, MatchReason, WriteOutcome
from ..core.exceptions import DatastoreError, MalformedSignatureError
from .matcher import IdentityMatcher
from .model import CheckInResult
from .repository import SignatureRepository

logger = logging.getLogger(__name__)

Frames = Union[AsyncIterable[Sequence[float]], Iterable[Sequence[float]]]


class RecognitionService:
    """Turns a captured face signature into a check-in.

    Only one check-in runs at a time: a call made while another is in flight
    returns ``BUSY`` instead of queueing. Each call is bounded by
    ``timeout_seconds`` and reports ``TIMED_OUT`` when it runs over.
    """

    def __init__(
        self,
        signatures: SignatureRepository,
        attendance: AttendanceService,
        matcher: IdentityMatcher,
        *,
        timeout_seconds: float = constants.DEFAULT_MATCH_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._signatures = signatures
        self._attendance = attendance
        self._matcher = matcher
        self._timeout = float(timeout_seconds)
        self._clock = clock
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    async def check_in(self, signature: Sequence[float], *, now: Optional[datetime] = None) -> CheckInResult:
        if self._in_flight:
            return CheckInResult(status=CheckInStatus.BUSY, message="A check-in is already in progress")

        self._in_flight = True
        try:
            return await asyncio.wait_for(self._check_in(signature, now or self._clock()), self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Check-in timed out after %.1fs", self._timeout)
            return CheckInResult(status=CheckInStatus.TIMED_OUT, message="Recognition timed out")
        finally:
            self._in_flight = False

    async def scan(self, frames: Frames) -> AsyncIterator[CheckInResult]:
        """Check in each frame in turn; the next frame is not read until the previous one finished."""
        if hasattr(frames, "__aiter__"):
            async for frame in frames:
                yield await self.check_in(frame)
        else:
            for frame in frames:
                yield await self.check_in(frame)

    async def _check_in(self, signature: Sequence[float], now: datetime) -> CheckInResult:
        try:
            enrolled = await self._signatures.list_all()
        except DatastoreError as e:
            logger.error("Cannot load enrolled signatures: %s", e)
            return CheckInResult(status=CheckInStatus.FAILED, message=f"Cannot load signatures: {e}")

        try:
            match = self._matcher.match(signature, enrolled)
        except MalformedSignatureError as e:
            logger.warning("Rejected malformed capture: %s", e)
            return CheckInResult(status=CheckInStatus.FAILED, message=str(e))

        if match.reason == MatchReason.NO_ENROLLED_SIGNATURES:
            return CheckInResult(status=CheckInStatus.NO_ENROLLED_SIGNATURES, message="No signatures enrolled")
        if not match.matched:
            return CheckInResult(status=CheckInStatus.NO_MATCH, distance=match.distance, message="Face not recognized")

        builder_id = match.builder_id
        if self._matcher.should_suppress(builder_id, now):
            return CheckInResult(status=CheckInStatus.RECENTLY_MATCHED, builder_id=builder_id, distance=match.distance)

        try:
            outcome = await self._attendance.record_check_in(builder_id, at=now)
        except DatastoreError as e:
            logger.error("Check-in write failed for %s: %s", builder_id, e)
            return CheckInResult(
                status=CheckInStatus.FAILED,
                builder_id=builder_id,
                distance=match.distance,
                message=f"Could not record attendance: {e}",
            )

        self._matcher.record_match(builder_id, now)
        self._matcher.history.sweep(now)

        if outcome == WriteOutcome.UNCHANGED:
            return CheckInResult(
                status=CheckInStatus.ALREADY_RECORDED,
                builder_id=builder_id,
                distance=match.distance,
                message="Attendance already recorded today",
            )

        logger.info("Checked in %s at %s (distance %.4f)", builder_id, now.isoformat(), match.distance)
        return CheckInResult(status=CheckInStatus.CHECKED_IN, builder_id=builder_id, distance=match.distance)
