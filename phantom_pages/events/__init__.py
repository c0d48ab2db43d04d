"""
Event subscriptions for phantom-pages pages.

- EventEmitter: ordered subscriber lists for fire-and-forget notifications
- ResponderSlot: single value-returning handler (confirm, prompt, ...)
"""

from .emitter import (
    EventEmitter,
    EventHandler,
    HandlerEntry,
    PageEvent,
    PageResponder,
    ResponderSlot,
)

__all__ = [
    "EventEmitter",
    "EventHandler",
    "HandlerEntry",
    "PageEvent",
    "PageResponder",
    "ResponderSlot",
]
