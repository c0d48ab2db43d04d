"""
Engine WebSocket connection.

Carries commands to the rendering engine's bridge server and routes its
replies and events back. Frames are JSON objects:

    -> {"id": 7, "target": "page-1", "method": "open", "args": ["https://..."]}
    <- {"id": 7, "result": ["success"]}
    <- {"id": 8, "error": {"code": -1, "message": "..."}}
    <- {"target": "page-1", "event": "onLoadFinished", "args": ["success"]}
    <- {"target": "page-1", "event": "onConfirm", "args": ["Sure?"], "replyTo": 3}
    -> {"replyTo": 3, "result": true}

Engine-side objects (the engine itself and its pages) are addressed by
target id and referenced in payloads as ``{"$target": "page-2"}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Iterable, Optional

import websockets
from websockets.asyncio.client import ClientConnection

from phantom_pages.config.defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_PING_INTERVAL,
    DEFAULT_PING_TIMEOUT,
)
from phantom_pages.exceptions import ExternalEngineError

logger = logging.getLogger(__name__)

EngineCallback = Callable[..., None]
EventCallback = Callable[..., Any]

ENGINE_TARGET = "phantom"
TARGET_KEY = "$target"

PHANTOM_METHODS = frozenset({
    "addCookie",
    "clearCookies",
    "createPage",
    "deleteCookie",
    "exit",
    "get",
    "injectJs",
    "set",
    "setProxy",
})

PAGE_METHODS = frozenset({
    "addCookie",
    "clearCookies",
    "clearMemoryCache",
    "close",
    "deleteCookie",
    "evaluate",
    "evaluateAsync",
    "evaluateJavaScript",
    "get",
    "go",
    "goBack",
    "goForward",
    "includeJs",
    "injectJs",
    "open",
    "openUrl",
    "reload",
    "render",
    "renderBase64",
    "sendEvent",
    "set",
    "setContent",
    "setFn",
    "stop",
    "switchToFocusedFrame",
    "switchToFrame",
    "switchToMainFrame",
    "switchToParentFrame",
    "uploadFile",
    "waitForSelector",
})


class EngineError(ExternalEngineError):
    """Error reply from the engine bridge."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"Engine Error {code}: {message}", cause=data)


class EngineConnection:
    """Manages the WebSocket connection to the engine bridge.

    Handles request correlation, per-target event dispatch and replies to
    value-returning engine callbacks.

    Example:
        connection = EngineConnection("ws://127.0.0.1:8910/engine")
        await connection.connect()
        version = await connection.send("phantom", "get", ["version"])
        await connection.disconnect()
    """

    def __init__(
        self,
        ws_url: str,
        *,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        """Initialize engine connection.

        Args:
            ws_url: WebSocket URL of the engine bridge.
            timeout: Default timeout for commands in seconds.
        """
        self._ws_url = ws_url
        self._timeout = timeout
        self._ws: Optional[ClientConnection] = None
        self._message_id = 0
        self._callbacks: dict[int, asyncio.Future[Any]] = {}
        self._target_handlers: dict[str, dict[str, list[EventCallback]]] = {}
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._reply_tasks: set[asyncio.Task[None]] = set()
        self._connected = False
        self._closed = False

    @property
    def ws_url(self) -> str:
        """Get the WebSocket URL."""
        return self._ws_url

    @property
    def is_connected(self) -> bool:
        """Check if connected to the engine."""
        return self._connected and self._ws is not None

    async def connect(self) -> None:
        """Establish WebSocket connection to the engine bridge."""
        if self._connected:
            return

        if self._closed:
            raise RuntimeError("Connection was closed and cannot be reused")

        logger.debug(f"Connecting to engine: {self._ws_url}")
        self._ws = await websockets.connect(
            self._ws_url,
            max_size=DEFAULT_MAX_MESSAGE_SIZE,
            ping_interval=DEFAULT_PING_INTERVAL,
            ping_timeout=DEFAULT_PING_TIMEOUT,
        )
        self._connected = True
        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.debug("Engine connection established")

    async def disconnect(self) -> None:
        """Close WebSocket connection."""
        if not self._connected and self._ws is None:
            return

        self._connected = False
        self._closed = True

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        for task in list(self._reply_tasks):
            task.cancel()

        self._fail_pending(ExternalEngineError("Engine connection closed"))

        if self._ws:
            await self._ws.close()
            self._ws = None

        logger.debug("Engine connection closed")

    def _fail_pending(self, error: Exception) -> None:
        callbacks, self._callbacks = self._callbacks, {}
        for future in callbacks.values():
            if not future.done():
                future.set_exception(error)

    async def send(
        self,
        target_id: str,
        method: str,
        args: Iterable[Any] = (),
        *,
        timeout: Optional[float] = None,
    ) -> list[Any]:
        """Send a command and wait for its reply.

        Args:
            target_id: Engine object the method is called on.
            method: Engine method name (e.g., "open").
            args: JSON-serializable positional arguments.
            timeout: Optional timeout override in seconds.

        Returns:
            The reply's result values.

        Raises:
            EngineError: If the engine replies with an error.
            asyncio.TimeoutError: If the command times out.
            RuntimeError: If not connected.
        """
        if not self._connected or self._ws is None:
            raise RuntimeError("Not connected to engine")

        self._message_id += 1
        message_id = self._message_id

        message = {
            "id": message_id,
            "target": target_id,
            "method": method,
            "args": list(args),
        }

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self._callbacks[message_id] = future

        try:
            await self._ws.send(json.dumps(message))
            logger.debug(f"Engine send: {target_id}.{method} (id={message_id})")

            return await asyncio.wait_for(future, timeout=timeout or self._timeout)
        finally:
            self._callbacks.pop(message_id, None)

    def invoke(
        self,
        target_id: str,
        method: str,
        args: Iterable[Any],
        callback: EngineCallback,
    ) -> None:
        """Send a command and report its outcome to an error-first callback.

        ``callback(None, *result)`` on success, ``callback(error)`` on any
        failure, including a missing connection or a timeout.
        """
        task = asyncio.ensure_future(self.send(target_id, method, list(args)))

        def done(t: asyncio.Future[list[Any]]) -> None:
            if t.cancelled():
                callback(ExternalEngineError(f"{method}() was cancelled"))
            elif t.exception() is not None:
                callback(t.exception())
            else:
                callback(None, *t.result())

        task.add_done_callback(done)

    def on(self, target_id: str, event: str, handler: EventCallback) -> None:
        """Register a handler for an event emitted by ``target_id``.

        Args:
            target_id: Engine object emitting the event.
            event: Engine callback name (e.g., "onLoadFinished").
            handler: Called with the event's arguments.
        """
        events = self._target_handlers.setdefault(target_id, {})
        events.setdefault(event, []).append(handler)

    def off(self, target_id: str, event: str, handler: EventCallback) -> None:
        """Remove an event handler."""
        handlers = self._target_handlers.get(target_id, {}).get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def remove_target_handlers(self, target_id: str) -> None:
        """Remove all handlers for a target."""
        self._target_handlers.pop(target_id, None)

    async def _receive_loop(self) -> None:
        """Background loop to receive and dispatch messages."""
        if self._ws is None:
            return

        try:
            async for message in self._ws:
                if not self._connected:
                    break

                try:
                    data = json.loads(message)
                    await self._handle_message(data)
                except json.JSONDecodeError:
                    logger.warning(f"Invalid JSON from engine: {message[:100]}")
                except Exception as e:
                    logger.exception(f"Error handling engine message: {e}")

        except websockets.exceptions.ConnectionClosed:
            logger.debug("Engine WebSocket connection closed")
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.exception(f"Engine receive loop error: {e}")
        finally:
            self._connected = False
            self._fail_pending(ExternalEngineError("Engine connection lost"))

    async def _handle_message(self, data: dict[str, Any]) -> None:
        """Handle an incoming engine message.

        Args:
            data: Parsed JSON message.
        """
        if "id" in data:
            message_id = data["id"]
            future = self._callbacks.pop(message_id, None)
            if future and not future.done():
                if data.get("error") is not None:
                    error = data["error"]
                    if not isinstance(error, dict):
                        error = {"message": str(error)}
                    future.set_exception(
                        EngineError(
                            error.get("code", -1),
                            error.get("message", "Unknown error"),
                            error.get("data"),
                        )
                    )
                else:
                    future.set_result(data.get("result") or [])

        elif "event" in data:
            target_id = data.get("target", ENGINE_TARGET)
            event = data["event"]
            args = data.get("args") or []
            handlers = list(self._target_handlers.get(target_id, {}).get(event, []))

            if "replyTo" in data:
                # Off the receive loop: responders may await engine commands.
                task = asyncio.create_task(self._reply(data["replyTo"], event, handlers, args))
                self._reply_tasks.add(task)
                task.add_done_callback(self._reply_tasks.discard)
                return

            for handler in handlers:
                try:
                    result = handler(*args)
                    if asyncio.iscoroutine(result):
                        asyncio.create_task(result)
                except Exception as e:
                    logger.exception(f"Error in engine event handler for {event}: {e}")

    async def _reply(
        self,
        reply_to: Any,
        event: str,
        handlers: list[EventCallback],
        args: list[Any],
    ) -> None:
        """Answer a value-returning engine callback with the first non-None result."""
        reply: Any = None
        for handler in handlers:
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    result = await result
                if reply is None:
                    reply = result
            except Exception as e:
                logger.exception(f"Error in engine event handler for {event}: {e}")

        if self._ws is None or not self._connected:
            logger.debug(f"Dropping reply to {event}: connection closed")
            return

        try:
            await self._ws.send(json.dumps({"replyTo": reply_to, "result": reply}))
        except websockets.exceptions.ConnectionClosed:
            logger.debug(f"Dropping reply to {event}: connection closed")

    async def __aenter__(self) -> "EngineConnection":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.disconnect()


class RemoteObject:
    """Callback-style proxy for an engine-side object.

    Each whitelisted engine method is exposed as an attribute taking the
    method's arguments followed by an error-first callback, which is the
    shape :func:`phantom_pages.core.bridge.call_async` drives:

        page = RemoteObject(connection, "page-1", PAGE_METHODS)
        status = await call_async(page, "open", "https://example.com")
    """

    def __init__(
        self,
        connection: EngineConnection,
        target_id: str,
        methods: Iterable[str] = PAGE_METHODS,
    ) -> None:
        self._connection = connection
        self._target_id = target_id
        self._methods = frozenset(methods)
        self._subscriptions: dict[tuple[str, EventCallback], EventCallback] = {}

    @property
    def connection(self) -> EngineConnection:
        return self._connection

    @property
    def target_id(self) -> str:
        return self._target_id

    @property
    def methods(self) -> frozenset[str]:
        return self._methods

    def __repr__(self) -> str:
        return f"RemoteObject({self._target_id!r})"

    def __getattr__(self, name: str) -> Callable[..., None]:
        if name.startswith("_") or name not in self._methods:
            raise AttributeError(f"{self._target_id} has no engine method {name!r}")

        def method(*args: Any) -> None:
            if not args or not callable(args[-1]):
                raise TypeError(f"{name}() needs a completion callback")
            *call_args, callback = args

            def completed(error: Any = None, *values: Any) -> None:
                callback(error, *(self._decode(v) for v in values))

            self._connection.invoke(self._target_id, name, call_args, completed)

        method.__name__ = name
        return method

    def child(self, target_id: str, methods: Iterable[str] = PAGE_METHODS) -> "RemoteObject":
        """Proxy for another engine object on the same connection."""
        return RemoteObject(self._connection, target_id, methods)

    def _decode(self, value: Any) -> Any:
        if isinstance(value, dict) and set(value) == {TARGET_KEY}:
            return self.child(value[TARGET_KEY])
        return value

    def subscribe(self, event: str, handler: EventCallback) -> None:
        """Register ``handler`` for an engine callback such as "onUrlChanged"."""
        def dispatch(*args: Any) -> Any:
            return handler(*(self._decode(a) for a in args))

        self._subscriptions[(event, handler)] = dispatch
        self._connection.on(self._target_id, event, dispatch)

    def unsubscribe(self, event: str, handler: EventCallback) -> None:
        dispatch = self._subscriptions.pop((event, handler), None)
        if dispatch is not None:
            self._connection.off(self._target_id, event, dispatch)

    def release(self) -> None:
        """Drop every event handler registered for this object."""
        self._subscriptions.clear()
        self._connection.remove_target_handlers(self._target_id)


__all__ = [
    "ENGINE_TARGET",
    "EngineConnection",
    "EngineError",
    "PAGE_METHODS",
    "PHANTOM_METHODS",
    "RemoteObject",
]
