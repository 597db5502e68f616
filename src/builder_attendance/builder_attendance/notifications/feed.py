from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from ..core.enums import ChangeKind


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    kind: ChangeKind


EventHandler = Callable[[ChangeEvent], None]
ErrorHandler = Callable[[BaseException], None]


class FeedSubscription(Protocol):
    def close(self) -> None:
        raise NotImplementedError


class ChangeFeed(Protocol):
    def open(self, table: str, on_event: EventHandler, on_error: ErrorHandler) -> FeedSubscription:
        """Start delivering change events for ``table``.

        ``on_error`` is called at most once; the subscription is dead afterwards
        and must still be closed by the caller.
        """

        raise NotImplementedError
