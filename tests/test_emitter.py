"""
Tests for event subscriptions, responders, property tables and cookies.
"""

import asyncio

import pytest

from phantom_pages.events import EventEmitter, PageEvent, PageResponder, ResponderSlot
from phantom_pages.exceptions import ValidationError
from phantom_pages.models import Cookie, coerce_cookie
from phantom_pages.properties import (
    ENGINE_PROPERTIES,
    PAGE_PROPERTIES,
    check_readable,
    check_writable,
)


class TestEngineNames:
    """Tests for engine callback names."""

    @pytest.mark.parametrize(
        "event, name",
        [
            (PageEvent.CONSOLE_MESSAGE, "onConsoleMessage"),
            (PageEvent.LOAD_FINISHED, "onLoadFinished"),
            (PageEvent.URL_CHANGED, "onUrlChanged"),
            (PageResponder.FILE_PICKER, "onFilePicker"),
            (PageResponder.CONFIRM, "onConfirm"),
        ],
    )
    def test_engine_name(self, event, name):
        """Test snake_case events map to engine callbacks."""
        assert event.engine_name == name


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_emit_in_registration_order(self):
        """Test every subscriber runs, in order."""
        emitter = EventEmitter()
        calls = []
        emitter.on(PageEvent.ALERT, lambda msg: calls.append(("first", msg)))
        emitter.on("alert", lambda msg: calls.append(("second", msg)))

        assert emitter.emit(PageEvent.ALERT, "hi") == 2
        assert calls == [("first", "hi"), ("second", "hi")]

    def test_once(self):
        """Test once handlers run a single time."""
        emitter = EventEmitter()
        calls = []
        emitter.once(PageEvent.CLOSING, calls.append)

        emitter.emit(PageEvent.CLOSING, 1)
        emitter.emit(PageEvent.CLOSING, 2)

        assert calls == [1]
        assert emitter.listener_count(PageEvent.CLOSING) == 0

    def test_off(self):
        """Test removing one handler or all of them."""
        emitter = EventEmitter()
        first, second = [], []
        emitter.on(PageEvent.ERROR, first.append).on(PageEvent.ERROR, second.append)

        emitter.off(PageEvent.ERROR, first.append)
        assert emitter.listeners(PageEvent.ERROR) == [second.append]

        emitter.off(PageEvent.ERROR)
        assert emitter.event_names() == []

    def test_failing_handler_is_isolated(self):
        """Test an exception does not stop later handlers."""
        emitter = EventEmitter()
        calls = []

        def broken(msg):
            raise RuntimeError("boom")

        emitter.on(PageEvent.ALERT, broken)
        emitter.on(PageEvent.ALERT, calls.append)

        assert emitter.emit(PageEvent.ALERT, "x") == 2
        assert calls == ["x"]

    @pytest.mark.asyncio
    async def test_coroutine_handlers_are_scheduled(self):
        """Test async handlers run as tasks."""
        emitter = EventEmitter()
        done = asyncio.Event()

        async def handler(url):
            done.set()

        emitter.on(PageEvent.URL_CHANGED, handler)
        emitter.emit(PageEvent.URL_CHANGED, "https://example.com/")

        await asyncio.wait_for(done.wait(), 1)

    def test_remove_all(self):
        """Test remove_all_listeners."""
        emitter = EventEmitter()
        emitter.on("a", print).on("b", print)
        emitter.remove_all_listeners()
        assert emitter.emit("a") == 0


class TestResponderSlot:
    """Tests for ResponderSlot."""

    def test_single_responder(self):
        """Test the latest handler answers."""
        slot = ResponderSlot("confirm")
        assert slot.respond("Sure?") is None

        slot.set(lambda msg: False)
        slot.set(lambda msg: True)
        assert slot.respond("Sure?") is True

        slot.clear()
        assert slot.handler is None
        assert slot.respond("Sure?") is None


class TestProperties:
    """Tests for the property tables."""

    def test_page_table(self):
        """Test page read-only and read-write keys."""
        check_readable(PAGE_PROPERTIES, "title")
        check_writable(PAGE_PROPERTIES, "paperSize.format")
        check_writable(PAGE_PROPERTIES, "viewportSize")

        with pytest.raises(ValidationError, match="read-only"):
            check_writable(PAGE_PROPERTIES, "plainText")

    def test_engine_table(self):
        """Test engine keys."""
        check_readable(ENGINE_PROPERTIES, "version")
        check_writable(ENGINE_PROPERTIES, "libraryPath")

        with pytest.raises(ValidationError, match="read-only"):
            check_writable(ENGINE_PROPERTIES, "args")

    @pytest.mark.parametrize("key", ["nope", "", None, 5])
    def test_unknown_keys(self, key):
        """Test unknown keys list the valid ones."""
        with pytest.raises(ValidationError, match="Valid keys"):
            check_readable(PAGE_PROPERTIES, key)


class TestCookie:
    """Tests for the Cookie model."""

    def test_engine_shaped_cookie(self):
        """Test the engine's date string and numeric expiry are both kept."""
        cookie = Cookie.from_engine(
            {
                "name": "sid",
                "value": "1",
                "path": "/",
                "expires": "Tue, 20 Oct 2026 10:00:00 GMT",
                "expiry": 1792490400,
            }
        )
        assert cookie.expires == "Tue, 20 Oct 2026 10:00:00 GMT"
        assert cookie.expiry == 1792490400
        assert cookie.to_engine()["expiry"] == 1792490400

    def test_engine_round_keys(self):
        """Test the engine's httponly key."""
        cookie = Cookie.from_engine(
            {"name": "sid", "value": "1", "httponly": True, "path": "/", "extra": "x"}
        )
        assert cookie.http_only is True
        assert cookie.to_engine() == {
            "name": "sid",
            "value": "1",
            "path": "/",
            "httponly": True,
            "secure": False,
        }

    def test_coerce_requires_path(self):
        """Test page cookies need a path."""
        with pytest.raises(ValidationError, match="path"):
            coerce_cookie({"name": "sid", "value": "1"}, require_path=True)
        assert coerce_cookie(Cookie(name="sid", value="1", path="/"), require_path=True).path == "/"

    @pytest.mark.parametrize(
        "cookie",
        [{"name": "a b", "value": "1"}, {"name": "a", "value": None}, ["a", "1"], None],
    )
    def test_coerce_rejects(self, cookie):
        """Test malformed cookies."""
        with pytest.raises(ValidationError):
            coerce_cookie(cookie)
