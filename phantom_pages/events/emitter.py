"""
Page event subscriptions.

Two kinds of engine callbacks exist:

- Notifications (console messages, url changes, resource events...). Any
  number of subscribers, invoked in registration order, return values ignored.
- Responders (confirm, prompt, file picker, callback). The engine expects
  exactly one return value, so at most one handler is installed at a time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Any]


class PageEvent(str, Enum):
    """Fire-and-forget page notifications and their engine callback names."""

    ALERT = "alert"
    CLOSING = "closing"
    CONSOLE_MESSAGE = "console_message"
    ERROR = "error"
    INITIALIZED = "initialized"
    LOAD_STARTED = "load_started"
    LOAD_FINISHED = "load_finished"
    NAVIGATION_REQUESTED = "navigation_requested"
    PAGE_CREATED = "page_created"
    RESOURCE_ERROR = "resource_error"
    RESOURCE_RECEIVED = "resource_received"
    RESOURCE_REQUESTED = "resource_requested"
    RESOURCE_TIMEOUT = "resource_timeout"
    URL_CHANGED = "url_changed"

    @property
    def engine_name(self) -> str:
        return _engine_name(self.value)


class PageResponder(str, Enum):
    """Value-returning page callbacks."""

    CALLBACK = "callback"
    CONFIRM = "confirm"
    FILE_PICKER = "file_picker"
    PROMPT = "prompt"

    @property
    def engine_name(self) -> str:
        return _engine_name(self.value)


def _engine_name(value: str) -> str:
    # "console_message" -> "onConsoleMessage"
    return "on" + "".join(part.capitalize() for part in value.split("_"))


@dataclass
class HandlerEntry:
    """Registered handler, optionally removed after its first call."""

    handler: EventHandler
    once: bool = False


class EventEmitter:
    """Ordered per-event subscriber lists.

    Example:
        emitter = EventEmitter()
        emitter.on(PageEvent.CONSOLE_MESSAGE, lambda msg, line, source: print(msg))
        emitter.emit(PageEvent.CONSOLE_MESSAGE, "hello", 1, "index.html")
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[HandlerEntry]] = {}

    @staticmethod
    def _key(event: Union[str, Enum]) -> str:
        return event.value if isinstance(event, Enum) else event

    def on(self, event: Union[str, PageEvent], handler: EventHandler) -> "EventEmitter":
        """Append a handler for ``event``.

        Returns:
            Self for chaining.
        """
        self._handlers.setdefault(self._key(event), []).append(HandlerEntry(handler))
        return self

    def once(self, event: Union[str, PageEvent], handler: EventHandler) -> "EventEmitter":
        """Append a handler removed after its first invocation."""
        self._handlers.setdefault(self._key(event), []).append(
            HandlerEntry(handler, once=True)
        )
        return self

    def off(
        self,
        event: Union[str, PageEvent],
        handler: Optional[EventHandler] = None,
    ) -> "EventEmitter":
        """Remove one handler, or every handler when ``handler`` is None."""
        key = self._key(event)
        if handler is None:
            self._handlers.pop(key, None)
        elif key in self._handlers:
            self._handlers[key] = [e for e in self._handlers[key] if e.handler != handler]
        return self

    def emit(self, event: Union[str, PageEvent], *args: Any) -> int:
        """Invoke the handlers of ``event`` in registration order.

        Coroutine handlers are scheduled as tasks. Handler exceptions are
        logged and do not stop the remaining handlers.

        Returns:
            Number of handlers invoked.
        """
        key = self._key(event)
        entries = self._handlers.get(key, [])[:]
        if any(e.once for e in entries):
            self._handlers[key] = [e for e in self._handlers[key] if not e.once]

        for entry in entries:
            try:
                result = entry.handler(*args)
                if asyncio.iscoroutine(result):
                    asyncio.ensure_future(result)
            except Exception as e:
                logger.exception(f"Error in handler for {key}: {e}")

        return len(entries)

    def listeners(self, event: Union[str, PageEvent]) -> list[EventHandler]:
        return [e.handler for e in self._handlers.get(self._key(event), [])]

    def listener_count(self, event: Union[str, PageEvent]) -> int:
        return len(self._handlers.get(self._key(event), []))

    def event_names(self) -> list[str]:
        return [key for key, entries in self._handlers.items() if entries]

    def remove_all_listeners(self) -> None:
        self._handlers.clear()


class ResponderSlot:
    """Holds at most one value-returning handler."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._handler: Optional[EventHandler] = None

    @property
    def handler(self) -> Optional[EventHandler]:
        return self._handler

    def set(self, handler: EventHandler) -> None:
        """Install ``handler``, replacing any previous responder."""
        if self._handler is not None:
            logger.debug(f"Replacing responder for {self.name}")
        self._handler = handler

    def clear(self) -> None:
        self._handler = None

    def respond(self, *args: Any) -> Any:
        """Call the responder and return its value, or None if unset."""
        if self._handler is None:
            return None
        return self._handler(*args)


__all__ = [
    "EventEmitter",
    "EventHandler",
    "HandlerEntry",
    "PageEvent",
    "PageResponder",
    "ResponderSlot",
]
