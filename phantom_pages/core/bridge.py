"""
Completion bridge.

Adapts a single error-first callback call into an ``asyncio.Future``:

    future = call_async(engine_page, "open", "https://example.com")
    status = await future

The wrapped member is invoked as ``member(*args, callback)`` and is expected
to eventually call ``callback(error, *values)``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable

from phantom_pages.exceptions import ExternalEngineError, ValidationError

logger = logging.getLogger(__name__)

_PRIMITIVES = (str, bytes, bytearray, int, float, bool)


def _settle(future: asyncio.Future[Any], error: Any, values: tuple[Any, ...]) -> None:
    """Resolve ``future`` from an error-first completion."""
    if future.done():
        # Cancelled by the caller, or the engine completed twice.
        logger.debug("Ignoring completion for an already settled call")
        return

    if error is not None:
        if not isinstance(error, BaseException):
            error = ExternalEngineError(str(error), cause=error)
        future.set_exception(error)
    elif not values:
        future.set_result(None)
    elif len(values) == 1:
        future.set_result(values[0])
    else:
        future.set_result(values)


def call_async(target: Any, member: str, *args: Any) -> asyncio.Future[Any]:
    """Invoke an error-first callback member and return a future for it.

    Args:
        target: Object owning the member.
        member: Name of the callable attribute to invoke.
        *args: Arguments passed before the trailing completion callback.

    Returns:
        Future resolving to ``None`` for no values, the value itself for a
        single value, or a tuple for several values.

    Raises:
        ValidationError: If ``target`` is not an object or ``member`` does not
            name a callable. Raised before anything is invoked.
    """
    if target is None or isinstance(target, _PRIMITIVES):
        raise ValidationError("Target must be an object")

    if not isinstance(member, str):
        raise ValidationError("Member name must be a string")

    function = getattr(target, member, None)
    if not callable(function):
        raise ValidationError(f'Invalid member: "{member}" - function does not exist')

    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()
    loop_thread = threading.get_ident()

    def callback(error: Any = None, *values: Any) -> None:
        if threading.get_ident() == loop_thread:
            _settle(future, error, values)
        else:
            loop.call_soon_threadsafe(_settle, future, error, values)

    try:
        function(*args, callback)
    except Exception as e:
        if not future.done():
            future.set_exception(e)

    return future


class CompletionBridge:
    """Bridge bound to one target object.

    Example:
        bridge = CompletionBridge(engine_page)
        title = await bridge.call("get", "title")
    """

    def __init__(self, target: Any) -> None:
        if target is None or isinstance(target, _PRIMITIVES):
            raise ValidationError("Target must be an object")
        self._target = target

    @property
    def target(self) -> Any:
        return self._target

    def call(self, member: str, *args: Any) -> asyncio.Future[Any]:
        """Invoke ``member`` on the bound target. See :func:`call_async`."""
        return call_async(self._target, member, *args)

    def has(self, member: str) -> bool:
        return callable(getattr(self._target, member, None))


Completion = Callable[..., None]

__all__ = ["call_async", "CompletionBridge", "Completion"]
