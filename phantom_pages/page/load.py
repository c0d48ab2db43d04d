"""
Load completion tracking.

The engine reports the end of a navigation once, with a status string
(``"success"`` or ``"fail"``). :class:`LoadSynchronizer` fans that single
signal out to persistent observers and to one-shot waiters created by
:meth:`LoadSynchronizer.wait_for_load`.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Optional

from phantom_pages.config.defaults import DEFAULT_LOAD_TIMEOUT_MS
from phantom_pages.exceptions import LoadTimeoutError

logger = logging.getLogger(__name__)

LoadObserver = Callable[[str], Any]


@dataclass
class _Waiter:
    future: asyncio.Future[Optional[str]]
    timer: Optional[asyncio.TimerHandle] = None
    fired: bool = False


class LoadSynchronizer:
    """Multiplexes the engine's load-finished signal.

    Example:
        sync = LoadSynchronizer()
        sync.add_observer(lambda status: print("loaded:", status))

        sync.navigation_started()
        waiter = sync.wait_for_load(5000)
        sync.load_finished("success")       # observer runs, waiter resolves
        await waiter
    """

    def __init__(self, default_timeout_ms: float = DEFAULT_LOAD_TIMEOUT_MS) -> None:
        self._default_timeout_ms = default_timeout_ms
        self._started_loading = False
        self._waiters: deque[_Waiter] = deque()
        self._observers: list[LoadObserver] = []

    @property
    def started_loading(self) -> bool:
        """True while a navigation is in flight."""
        return self._started_loading

    @property
    def pending_waiters(self) -> int:
        return sum(1 for w in self._waiters if not w.fired)

    @property
    def observers(self) -> list[LoadObserver]:
        return list(self._observers)

    def navigation_started(self) -> None:
        self._started_loading = True

    def add_observer(self, observer: LoadObserver) -> None:
        """Register an observer called once per completed navigation."""
        self._observers.append(observer)

    def remove_observer(self, observer: LoadObserver) -> bool:
        if observer in self._observers:
            self._observers.remove(observer)
            return True
        return False

    def wait_for_load(self, timeout_ms: Optional[float] = None) -> asyncio.Future[Optional[str]]:
        """Wait for the in-flight navigation to finish.

        Args:
            timeout_ms: Budget in milliseconds. Defaults to 20 seconds.

        Returns:
            Future resolving to the load status, or to None right away when
            no navigation is in flight. Fails with :class:`LoadTimeoutError`
            if the budget runs out first; the navigation itself continues.
        """
        if timeout_ms is None:
            timeout_ms = self._default_timeout_ms

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Optional[str]] = loop.create_future()

        if not self._started_loading:
            future.set_result(None)
            return future

        waiter = _Waiter(future)
        waiter.timer = loop.call_later(timeout_ms / 1000, self._expire, waiter, timeout_ms)
        self._waiters.append(waiter)
        return future

    def _expire(self, waiter: _Waiter, timeout_ms: float) -> None:
        if waiter.fired:
            return
        # Stays queued; the next load_finished() drops it.
        waiter.fired = True
        if not waiter.future.done():
            logger.debug(f"wait_for_load timed out after {timeout_ms:g}ms")
            waiter.future.set_exception(LoadTimeoutError(timeout_ms))

    def load_finished(self, status: str) -> None:
        """Deliver the load-finished signal for the current navigation.

        Args:
            status: Engine status string, ``"success"`` or ``"fail"``.
        """
        self._started_loading = False

        waiters, self._waiters = self._waiters, deque()
        for waiter in waiters:
            if waiter.fired:
                continue
            waiter.fired = True
            if waiter.timer is not None:
                waiter.timer.cancel()
            if not waiter.future.done():
                waiter.future.set_result(status)

        for observer in list(self._observers):
            try:
                result = observer(status)
                if asyncio.iscoroutine(result):
                    asyncio.ensure_future(result)
            except Exception as e:
                logger.exception(f"Error in load observer: {e}")

    def cancel_waiters(self) -> None:
        """Drop every pending waiter, cancelling its future."""
        waiters, self._waiters = self._waiters, deque()
        for waiter in waiters:
            if waiter.fired:
                continue
            waiter.fired = True
            if waiter.timer is not None:
                waiter.timer.cancel()
            waiter.future.cancel()


__all__ = ["LoadSynchronizer", "LoadObserver"]
