"""
Shared fixtures for phantom-pages tests.

``FakeRemote`` stands in for an engine-side object: it exposes the engine's
callback-style methods, completes them on the next loop iteration and lets
tests fire engine callbacks by name.
"""

import asyncio
from pathlib import Path
from typing import Any, Callable

import pytest

from phantom_pages.config import PageOptions
from phantom_pages.engine.connection import PAGE_METHODS, PHANTOM_METHODS
from phantom_pages.page import WebPage, create_page_handle

ENGINE_METHODS = PAGE_METHODS | PHANTOM_METHODS


class FakeRemote:
    """In-process engine object with scripted results."""

    def __init__(self, target_id: str = "page-1") -> None:
        self.target_id = target_id
        self.calls: list[tuple[str, list[Any]]] = []
        self.results: dict[str, Any] = {}
        self.errors: dict[str, Any] = {}
        self.handlers: dict[str, list[Callable[..., Any]]] = {}
        self.load_status = "success"
        self.auto_load = True
        self.render_output = b"%PDF-1.4 fake document"
        self.released = False

    def __getattr__(self, name: str) -> Callable[..., None]:
        if name.startswith("_") or name not in ENGINE_METHODS:
            raise AttributeError(name)

        def method(*args: Any) -> None:
            *call_args, callback = args
            self._complete(name, call_args, callback)

        return method

    def _complete(self, method: str, args: list[Any], callback: Callable[..., None]) -> None:
        self.calls.append((method, list(args)))
        loop = asyncio.get_running_loop()

        if method in self.errors:
            loop.call_soon(callback, self.errors[method])
            return

        if method == "render":
            Path(args[0]).write_bytes(self.render_output)

        if method in ("open", "openUrl") and self.auto_load:
            loop.call_soon(self.fire, "onLoadFinished", self.load_status)
            loop.call_soon(callback, None, self.load_status)
            return

        result = self.results.get(method, ())
        if callable(result):
            result = result(*args)
        loop.call_soon(callback, None, *result)

    def subscribe(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[..., Any]) -> None:
        if handler in self.handlers.get(event, []):
            self.handlers[event].remove(handler)

    def release(self) -> None:
        self.released = True
        self.handlers.clear()

    def fire(self, event: str, *args: Any) -> list[Any]:
        return [handler(*args) for handler in list(self.handlers.get(event, []))]

    def called(self, method: str) -> list[list[Any]]:
        return [args for name, args in self.calls if name == method]


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def render_tmp(tmp_path: Path) -> Path:
    """Directory used for the page's temporary files."""
    path = tmp_path / "render-tmp"
    path.mkdir()
    return path


@pytest.fixture
def page(remote: FakeRemote, render_tmp: Path) -> WebPage:
    return create_page_handle(remote, PageOptions(temp_dir=str(render_tmp), load_timeout_ms=1000))


@pytest.fixture
def make_remote() -> Callable[..., FakeRemote]:
    return FakeRemote
