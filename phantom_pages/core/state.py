"""
Session lifecycle state.

Both the engine handle and every page handle own one
:class:`SessionStateMachine`. The machine only moves forward:
``OPEN -> CLOSING -> CLOSED``.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from phantom_pages.exceptions import InvalidStateError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a session handle."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class SessionStateMachine:
    """Open/Closing/Closed guard shared by engine and page handles.

    Example:
        state = SessionStateMachine("page")
        state.ensure_open("render")          # raises once close() was called
        await state.close(teardown)          # teardown runs at most once
    """

    def __init__(self, name: str = "session") -> None:
        self._name = name
        self._state = SessionState.OPEN
        self._teardown_task: Optional[asyncio.Future[None]] = None

    @property
    def state(self) -> SessionState:
        return self._state

    def is_closed(self) -> bool:
        """True as soon as ``close()`` has been called."""
        return self._state is not SessionState.OPEN

    def ensure_open(self, action: Optional[str] = None) -> None:
        """Raise :class:`InvalidStateError` if closing has begun.

        Args:
            action: Name of the attempted operation, used in the message.
        """
        if self._state is not SessionState.OPEN:
            what = f"call {action}() on" if action else "use"
            raise InvalidStateError(
                f"Cannot {what} the {self._name} after close() ({self._state.value})"
            )

    def close(
        self,
        teardown: Callable[[], Awaitable[Any]],
    ) -> Awaitable[None]:
        """Begin closing and return an awaitable for completion.

        The state switches to CLOSING immediately, so every guarded
        operation fails from this call onward. The first call runs
        ``teardown``; the state reaches CLOSED whether or not it succeeds,
        and only the first caller sees a teardown error. Later calls wait
        for the teardown to finish and never raise.

        Args:
            teardown: Coroutine factory releasing the underlying resource.

        Returns:
            Awaitable completing once the session is CLOSED.
        """
        if self._state is SessionState.OPEN:
            self._state = SessionState.CLOSING
            logger.debug(f"Closing {self._name}")
            self._teardown_task = asyncio.ensure_future(self._run_teardown(teardown))
            self._teardown_task.add_done_callback(self._log_teardown_error)
            return self._teardown_task

        return self._wait_closed()

    async def _run_teardown(self, teardown: Callable[[], Awaitable[Any]]) -> None:
        try:
            await teardown()
        finally:
            self._state = SessionState.CLOSED
            logger.debug(f"{self._name.capitalize()} closed")

    def _log_teardown_error(self, task: asyncio.Future[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Error while closing {self._name}: {task.exception()!r}")

    async def _wait_closed(self) -> None:
        task = self._teardown_task
        if task is not None and not task.done():
            await asyncio.wait([task])


__all__ = ["SessionState", "SessionStateMachine"]
