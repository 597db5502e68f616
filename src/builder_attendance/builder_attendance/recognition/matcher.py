from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

import numpy as np

from ..core import constants
from ..core.enums import MatchReason
from ..core.exceptions import MalformedSignatureError
from .history import RecognitionHistory
from .model import FaceSignature, MatchResult

logger = logging.getLogger(__name__)


def as_vector(values: Sequence[float]) -> np.ndarray:
    """Validate and convert a signature into a 1-D float array."""
    try:
        vector = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise MalformedSignatureError(f"Signature is not numeric: {e}") from e

    if vector.ndim != 1 or vector.size == 0:
        raise MalformedSignatureError("Signature must be a non-empty 1-D vector")
    if not np.all(np.isfinite(vector)):
        raise MalformedSignatureError("Signature contains non-finite values")
    return vector


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance; vectors of different length are compared on their common prefix."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    n = min(va.size, vb.size)
    return float(np.linalg.norm(va[:n] - vb[:n]))


class IdentityMatcher:
    """Nearest-neighbour search over every enrolled signature of every builder.

    A candidate whose length differs from the query is compared after truncating
    both to the shorter length. The match is accepted only when the best distance
    is ``<= threshold``.

    Duplicate suppression state lives in the injected ``RecognitionHistory``:
    callers check ``should_suppress`` before acting on a match and call
    ``record_match`` once the check-in has been written.
    """

    def __init__(
        self,
        history: RecognitionHistory,
        *,
        threshold: float = constants.DEFAULT_MATCH_THRESHOLD,
        cooldown: timedelta = timedelta(seconds=constants.DEFAULT_RECOGNITION_COOLDOWN_SECONDS),
    ):
        if threshold < 0:
            raise ValueError("threshold must be non-negative")
        self._history = history
        self._threshold = float(threshold)
        self._cooldown = cooldown

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    @property
    def history(self) -> RecognitionHistory:
        return self._history

    def match(
        self,
        signature: Sequence[float],
        enrolled: Iterable[FaceSignature],
        threshold: Optional[float] = None,
    ) -> MatchResult:
        query = as_vector(signature)
        limit = self._threshold if threshold is None else float(threshold)

        # Group by dimension so each group is one vectorised numpy pass.
        groups: dict[int, tuple[list[int], list[str], list[np.ndarray]]] = {}
        for index, candidate in enumerate(enrolled):
            try:
                vector = as_vector(candidate.vector)
            except MalformedSignatureError as e:
                logger.warning("Skipping malformed signature of builder %s: %s", candidate.builder_id, e)
                continue
            indices, owners, rows = groups.setdefault(vector.size, ([], [], []))
            indices.append(index)
            owners.append(candidate.builder_id)
            rows.append(vector)

        if not groups:
            return MatchResult(reason=MatchReason.NO_ENROLLED_SIGNATURES)

        best: Optional[tuple[float, int, str]] = None
        for size, (indices, owners, rows) in groups.items():
            n = min(size, query.size)
            if size != query.size:
                logger.debug("Comparing %d-d query against %d-d signatures on first %d dims", query.size, size, n)
            distances = np.linalg.norm(np.vstack(rows)[:, :n] - query[:n], axis=1)
            pos = int(np.argmin(distances))
            candidate = (float(distances[pos]), indices[pos], owners[pos])
            if best is None or candidate[:2] < best[:2]:
                best = candidate

        distance, _, builder_id = best
        if distance <= limit:
            return MatchResult(reason=MatchReason.MATCHED, builder_id=builder_id, distance=distance)

        logger.debug("No match: closest distance %.4f above threshold %.4f", distance, limit)
        return MatchResult(reason=MatchReason.ABOVE_THRESHOLD, distance=distance)

    def should_suppress(self, builder_id: str, now: datetime, cooldown: Optional[timedelta] = None) -> bool:
        last = self._history.last_seen(builder_id)
        if last is None:
            return False
        return now - last < (cooldown if cooldown is not None else self._cooldown)

    def record_match(self, builder_id: str, now: datetime) -> None:
        self._history.record(builder_id, now)
