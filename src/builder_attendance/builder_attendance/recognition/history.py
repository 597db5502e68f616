from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterator, Optional


class RecognitionHistory:
    """Process-local map of ``builder_id -> last accepted match time``.

    ``sweep`` drops entries older than ``retention``; ``record`` runs it once
    the map grows past ``max_entries``. Entries still inside the retention
    window are never evicted, so a burst of distinct builders within one
    window may push the map over ``max_entries`` until they expire. Keep
    ``retention`` at least as long as the cooldown it backs. Never persisted.
    """

    def __init__(self, *, retention: timedelta, max_entries: int = 1024):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._retention = retention
        self._max_entries = int(max_entries)
        self._sweep_at = self._max_entries
        self._last_seen: dict[str, datetime] = {}

    def __len__(self) -> int:
        return len(self._last_seen)

    def __contains__(self, builder_id: object) -> bool:
        return builder_id in self._last_seen

    def __iter__(self) -> Iterator[str]:
        return iter(self._last_seen)

    @property
    def retention(self) -> timedelta:
        return self._retention

    def last_seen(self, builder_id: str) -> Optional[datetime]:
        return self._last_seen.get(builder_id)

    def record(self, builder_id: str, at: datetime) -> None:
        self._last_seen[builder_id] = at
        if len(self._last_seen) > self._sweep_at:
            self.sweep(at)

    def sweep(self, now: datetime) -> int:
        before = len(self._last_seen)
        cutoff = now - self._retention
        self._last_seen = {bid: ts for bid, ts in self._last_seen.items() if ts > cutoff}
        # Everything left is live; don't sweep again until the map doubles.
        self._sweep_at = max(self._max_entries, 2 * len(self._last_seen))
        return before - len(self._last_seen)

    def clear(self) -> None:
        self._last_seen.clear()
        self._sweep_at = self._max_entries
