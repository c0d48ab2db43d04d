"""
Tests for the engine WebSocket connection and remote object proxies.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from phantom_pages.core.bridge import call_async
from phantom_pages.engine.connection import (
    PHANTOM_METHODS,
    EngineConnection,
    EngineError,
    RemoteObject,
)
from phantom_pages.exceptions import ExternalEngineError


def _connected(timeout: float = 1.0) -> EngineConnection:
    connection = EngineConnection("ws://127.0.0.1:8910/engine", timeout=timeout)
    connection._ws = AsyncMock()
    connection._connected = True
    return connection


def _sent(connection: EngineConnection) -> list[dict]:
    return [json.loads(c.args[0]) for c in connection._ws.send.call_args_list]


async def _replies_done(connection: EngineConnection) -> None:
    await asyncio.gather(*list(connection._reply_tasks))


class _ScriptedSocket:
    """WebSocket double that answers every command with ``[True]``."""

    def __init__(self) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[dict] = []
        self.replied = asyncio.Event()

    async def send(self, raw: str) -> None:
        message = json.loads(raw)
        self.sent.append(message)
        if "method" in message:
            self.incoming.put_nowait(json.dumps({"id": message["id"], "result": [True]}))
        if "replyTo" in message:
            self.replied.set()

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self.incoming.get()
        if item is None:
            raise StopAsyncIteration
        return item

    async def close(self) -> None:
        pass


class TestSend:
    """Tests for request and reply correlation."""

    @pytest.mark.asyncio
    async def test_send_resolves_with_result(self):
        """Test a reply completes the matching request."""
        connection = _connected()

        async def reply(raw):
            message = json.loads(raw)
            asyncio.get_running_loop().create_task(
                connection._handle_message({"id": message["id"], "result": ["success"]})
            )

        connection._ws.send.side_effect = reply

        result = await connection.send("page-1", "open", ["https://example.com"])

        assert result == ["success"]
        assert _sent(connection) == [
            {"id": 1, "target": "page-1", "method": "open", "args": ["https://example.com"]}
        ]
        assert connection._callbacks == {}

    @pytest.mark.asyncio
    async def test_error_reply(self):
        """Test error replies raise EngineError."""
        connection = _connected()

        async def reply(raw):
            message = json.loads(raw)
            asyncio.get_running_loop().create_task(
                connection._handle_message(
                    {"id": message["id"], "error": {"code": 12, "message": "no such page"}}
                )
            )

        connection._ws.send.side_effect = reply

        with pytest.raises(EngineError) as exc_info:
            await connection.send("page-9", "reload")

        assert exc_info.value.code == 12
        assert exc_info.value.message == "no such page"
        assert isinstance(exc_info.value, ExternalEngineError)

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test a missing reply times out and is forgotten."""
        connection = _connected(timeout=0.05)

        with pytest.raises(asyncio.TimeoutError):
            await connection.send("page-1", "stop")

        assert connection._callbacks == {}

    @pytest.mark.asyncio
    async def test_not_connected(self):
        """Test sending before connect."""
        connection = EngineConnection("ws://127.0.0.1:8910/engine")
        with pytest.raises(RuntimeError, match="Not connected"):
            await connection.send("phantom", "get", ["version"])

    @pytest.mark.asyncio
    async def test_unknown_reply_ignored(self):
        """Test replies without a waiting request."""
        connection = _connected()
        await connection._handle_message({"id": 99, "result": [1]})

    @pytest.mark.asyncio
    async def test_disconnect_fails_pending(self):
        """Test pending requests fail when the connection closes."""
        connection = _connected()
        ws = connection._ws
        future = asyncio.get_running_loop().create_future()
        connection._callbacks[5] = future

        await connection.disconnect()

        with pytest.raises(ExternalEngineError, match="closed"):
            await future
        ws.close.assert_awaited_once()
        assert connection.is_connected is False


class TestInvoke:
    """Tests for the error-first invoke path."""

    @pytest.mark.asyncio
    async def test_failure_reaches_callback(self):
        """Test connection errors are reported, not raised."""
        connection = EngineConnection("ws://127.0.0.1:8910/engine")
        outcome = asyncio.get_running_loop().create_future()

        connection.invoke("page-1", "reload", [], lambda *a: outcome.set_result(a))

        (error,) = await outcome
        assert isinstance(error, RuntimeError)

    @pytest.mark.asyncio
    async def test_success_reaches_callback(self):
        """Test result values are spread after a None error."""
        connection = _connected()

        async def reply(raw):
            message = json.loads(raw)
            asyncio.get_running_loop().create_task(
                connection._handle_message({"id": message["id"], "result": ["a", 2]})
            )

        connection._ws.send.side_effect = reply
        outcome = asyncio.get_running_loop().create_future()

        connection.invoke("page-1", "evaluate", ["fn"], lambda *a: outcome.set_result(a))

        assert await outcome == (None, "a", 2)


class TestEvents:
    """Tests for event dispatch."""

    @pytest.mark.asyncio
    async def test_dispatch_by_target(self):
        """Test handlers only see their own target's events."""
        connection = _connected()
        seen = []
        connection.on("page-1", "onUrlChanged", lambda url: seen.append(("page-1", url)))
        connection.on("page-2", "onUrlChanged", lambda url: seen.append(("page-2", url)))

        await connection._handle_message(
            {"target": "page-2", "event": "onUrlChanged", "args": ["https://b.test/"]}
        )

        assert seen == [("page-2", "https://b.test/")]
        connection._ws.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        """Test one broken handler is logged and skipped."""
        connection = _connected()
        seen = []

        def broken(*args):
            raise ValueError("boom")

        connection.on("page-1", "onAlert", broken)
        connection.on("page-1", "onAlert", seen.append)

        await connection._handle_message({"target": "page-1", "event": "onAlert", "args": ["hi"]})

        assert seen == ["hi"]

    @pytest.mark.asyncio
    async def test_reply_to_value_callbacks(self):
        """Test replyTo events send the handler's value back."""
        connection = _connected()
        connection.on("page-1", "onConfirm", lambda msg: msg == "Sure?")

        await connection._handle_message(
            {"target": "page-1", "event": "onConfirm", "args": ["Sure?"], "replyTo": 3}
        )
        await _replies_done(connection)

        assert _sent(connection) == [{"replyTo": 3, "result": True}]

    @pytest.mark.asyncio
    async def test_reply_awaits_coroutine_handler(self):
        """Test coroutine handlers are awaited for replies."""
        connection = _connected()

        async def prompt(msg, default):
            return "typed"

        connection.on("page-1", "onPrompt", prompt)

        await connection._handle_message(
            {"target": "page-1", "event": "onPrompt", "args": ["Name?", ""], "replyTo": 4}
        )
        await _replies_done(connection)

        assert _sent(connection) == [{"replyTo": 4, "result": "typed"}]

    @pytest.mark.asyncio
    async def test_reply_without_handler(self):
        """Test an unanswered callback still gets a null reply."""
        connection = _connected()

        await connection._handle_message(
            {"target": "page-1", "event": "onFilePicker", "args": ["a.txt"], "replyTo": 8}
        )
        await _replies_done(connection)

        assert _sent(connection) == [{"replyTo": 8, "result": None}]

    @pytest.mark.asyncio
    async def test_async_responder_can_call_engine(self):
        """Test a responder awaiting an engine command while the loop keeps reading."""
        connection = EngineConnection("ws://127.0.0.1:8910/engine", timeout=1.0)
        socket = _ScriptedSocket()
        connection._ws = socket
        connection._connected = True

        async def confirm(msg):
            (answer,) = await connection.send("page-1", "evaluate", ["function() { return true; }"])
            return answer

        connection.on("page-1", "onConfirm", confirm)
        receiving = asyncio.create_task(connection._receive_loop())

        socket.incoming.put_nowait(
            json.dumps({"target": "page-1", "event": "onConfirm", "args": ["Sure?"], "replyTo": 1})
        )
        await asyncio.wait_for(socket.replied.wait(), 1.0)

        socket.incoming.put_nowait(None)
        await receiving

        assert socket.sent == [
            {"id": 1, "target": "page-1", "method": "evaluate", "args": ["function() { return true; }"]},
            {"replyTo": 1, "result": True},
        ]

    def test_off_and_remove_target(self):
        """Test handler removal."""
        connection = EngineConnection("ws://127.0.0.1:8910/engine")
        handler = MagicMock()
        connection.on("page-1", "onClosing", handler)
        connection.off("page-1", "onClosing", handler)
        connection.off("page-1", "onClosing", handler)
        assert connection._target_handlers["page-1"]["onClosing"] == []

        connection.on("page-1", "onClosing", handler)
        connection.remove_target_handlers("page-1")
        assert "page-1" not in connection._target_handlers


class TestRemoteObject:
    """Tests for RemoteObject."""

    def test_whitelist(self):
        """Test only engine methods are exposed."""
        remote = RemoteObject(EngineConnection("ws://x"), "page-1")

        with pytest.raises(AttributeError):
            remote.createPage
        with pytest.raises(AttributeError):
            remote.not_a_method
        with pytest.raises(TypeError, match="callback"):
            remote.open("https://example.com")

    @pytest.mark.asyncio
    async def test_object_references_are_decoded(self):
        """Test {"$target": id} results become proxies."""
        connection = EngineConnection("ws://x")
        connection.invoke = MagicMock(
            side_effect=lambda target, method, args, cb: cb(None, {"$target": "page-2"})
        )
        engine = RemoteObject(connection, "phantom", PHANTOM_METHODS)

        page = await call_async(engine, "createPage")

        assert isinstance(page, RemoteObject)
        assert page.target_id == "page-2"
        assert page.connection is connection
        connection.invoke.assert_called_once()
        assert connection.invoke.call_args.args[:3] == ("phantom", "createPage", [])

    @pytest.mark.asyncio
    async def test_subscribe_decodes_and_unsubscribes(self):
        """Test event arguments are decoded and handlers can be removed."""
        connection = _connected()
        remote = RemoteObject(connection, "page-1")
        created = []

        remote.subscribe("onPageCreated", created.append)
        await connection._handle_message(
            {"target": "page-1", "event": "onPageCreated", "args": [{"$target": "page-5"}]}
        )
        remote.unsubscribe("onPageCreated", created.append)
        await connection._handle_message(
            {"target": "page-1", "event": "onPageCreated", "args": [{"$target": "page-6"}]}
        )

        assert [p.target_id for p in created] == ["page-5"]

    def test_release(self):
        """Test release drops every handler of the target."""
        connection = EngineConnection("ws://x")
        remote = RemoteObject(connection, "page-1")
        remote.subscribe("onLoadStarted", lambda: None)
        remote.subscribe("onLoadFinished", lambda status: None)

        remote.release()

        assert "page-1" not in connection._target_handlers
