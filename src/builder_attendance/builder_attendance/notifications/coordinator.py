from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from ..core import constants
from ..core.exceptions import DatastoreError
from .feed import ChangeEvent, ChangeFeed, FeedSubscription

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Any]


class ChangeNotificationCoordinator:
    """Fans a noisy change feed out to refresh callbacks.

    - one upstream subscription, opened on the first ``subscribe`` and closed
      when the last callback unsubscribes;
    - at most one invocation per ``debounce`` window: the first event after a
      quiet window fires at once, later ones collapse into a single trailing
      call at the end of the window;
    - each invocation calls one representative callback, the earliest one
      still registered;
    - an upstream error closes the subscription for ``error_cooldown`` seconds.

    Must be used from inside a running event loop.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        *,
        table: str = constants.ATTENDANCE_TABLE,
        debounce: float = constants.DEFAULT_NOTIFY_DEBOUNCE_SECONDS,
        error_cooldown: float = constants.DEFAULT_FEED_ERROR_COOLDOWN_SECONDS,
    ):
        if debounce < 0 or error_cooldown < 0:
            raise ValueError("debounce and error_cooldown must be non-negative")
        self._feed = feed
        self._table = table
        self._debounce = float(debounce)
        self._error_cooldown = float(error_cooldown)

        self._callbacks: list[tuple[object, RefreshCallback]] = []
        self._subscription: Optional[FeedSubscription] = None
        self._last_fired: Optional[float] = None
        self._cooldown_until: Optional[float] = None
        self._trailing: Optional[asyncio.TimerHandle] = None
        self._reopen: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    @property
    def is_open(self) -> bool:
        return self._subscription is not None

    @property
    def is_cooling_down(self) -> bool:
        return self._cooldown_until is not None and self._loop().time() < self._cooldown_until

    def subscribe(self, callback: RefreshCallback) -> Callable[[], None]:
        if self._closed:
            raise RuntimeError("Coordinator is closed")

        token = object()
        self._callbacks.append((token, callback))
        try:
            self._ensure_open()
        except Exception:
            # Rejected by the feed itself (e.g. an unwatchable table).
            self._remove(token)
            raise

        def unsubscribe() -> None:
            self._remove(token)

        return unsubscribe

    def close(self) -> None:
        self._closed = True
        self._callbacks.clear()
        self._cancel_timers()
        self._close_upstream()
        for task in list(self._tasks):
            task.cancel()

    def _remove(self, token: object) -> None:
        before = len(self._callbacks)
        self._callbacks = [(t, cb) for t, cb in self._callbacks if t is not token]
        if before != len(self._callbacks) and not self._callbacks:
            logger.info("Last subscriber left, closing %s change feed", self._table)
            self._cancel_timers()
            self._close_upstream()

    def _ensure_open(self) -> None:
        if self._closed or not self._callbacks or self._subscription is not None or self._reopen is not None:
            return

        loop = self._loop()
        if self._cooldown_until is not None:
            remaining = self._cooldown_until - loop.time()
            if remaining > 0:
                self._reopen = loop.call_later(remaining, self._reopen_upstream)
                return
            self._cooldown_until = None

        try:
            self._subscription = self._feed.open(self._table, self._on_event, self._on_error)
        except DatastoreError as e:
            self._on_error(e)
            return
        logger.info("Opened %s change feed for %d subscribers", self._table, len(self._callbacks))

    def _reopen_upstream(self) -> None:
        self._reopen = None
        self._ensure_open()

    def _close_upstream(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.close()

    def _cancel_timers(self) -> None:
        for handle in (self._trailing, self._reopen):
            if handle is not None:
                handle.cancel()
        self._trailing = None
        self._reopen = None

    def _on_event(self, event: ChangeEvent) -> None:
        if self._closed or not self._callbacks:
            return
        logger.debug("Change detected on %s: %s", event.table, event.kind.value)

        if self._trailing is not None:
            return

        loop = self._loop()
        elapsed = None if self._last_fired is None else loop.time() - self._last_fired
        if elapsed is None or elapsed >= self._debounce:
            self._fire()
        else:
            self._trailing = loop.call_later(self._debounce - elapsed, self._fire_trailing)

    def _on_error(self, exc: BaseException) -> None:
        logger.warning("%s change feed failed, retrying in %.0fs: %s", self._table, self._error_cooldown, exc)
        self._close_upstream()
        if self._closed:
            return

        loop = self._loop()
        self._cooldown_until = loop.time() + self._error_cooldown
        if self._reopen is None and self._callbacks:
            self._reopen = loop.call_later(self._error_cooldown, self._reopen_upstream)

    def _fire_trailing(self) -> None:
        self._trailing = None
        self._fire()

    def _fire(self) -> None:
        if not self._callbacks:
            return
        self._last_fired = self._loop().time()
        _, callback = self._callbacks[0]

        try:
            result = callback()
        except Exception:
            logger.exception("Change callback failed")
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Change callback failed", exc_info=task.exception())

    @staticmethod
    def _loop() -> asyncio.AbstractEventLoop:
        return asyncio.get_running_loop()
