"""
Engine handle.

One :class:`Phantom` per engine connection. It creates pages, manages the
engine-wide cookie jar and proxy, and shuts the engine down on exit.

Example:
    async with await Phantom.connect("ws://127.0.0.1:8910/engine") as phantom:
        page = await phantom.create_page()
        await page.open("https://example.com")
        pdf = await page.render_pdf()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, Union

from phantom_pages.config.options import EngineOptions, PhantomPagesConfig, ProxyType
from phantom_pages.core.bridge import CompletionBridge
from phantom_pages.core.state import SessionState, SessionStateMachine
from phantom_pages.engine.connection import (
    ENGINE_TARGET,
    PHANTOM_METHODS,
    EngineConnection,
    RemoteObject,
)
from phantom_pages.events.emitter import EventHandler
from phantom_pages.exceptions import ValidationError
from phantom_pages.models import Cookie, coerce_cookie
from phantom_pages.page.webpage import WebPage, create_page_handle
from phantom_pages.properties import ENGINE_PROPERTIES, check_readable, check_writable
from phantom_pages.utils.validation import require_str

logger = logging.getLogger(__name__)


class Phantom:
    """Handle for the rendering engine.

    Closing the engine handle does not mark its pages closed, and closing a
    page leaves the engine handle open.
    """

    def __init__(
        self,
        remote: Any,
        connection: Optional[EngineConnection] = None,
        config: Optional[PhantomPagesConfig] = None,
    ) -> None:
        self._remote = remote
        self._connection = connection
        self._config = config or PhantomPagesConfig()
        self._bridge = CompletionBridge(remote)
        self._state = SessionStateMachine("engine")

    @classmethod
    async def create(cls, config: Optional[PhantomPagesConfig] = None) -> "Phantom":
        """Connect to the engine described by ``config``.

        A configured proxy is applied before the handle is returned.
        """
        config = config or PhantomPagesConfig()
        connection = EngineConnection(
            config.engine.ws_url,
            timeout=config.engine.command_timeout,
        )
        await connection.connect()

        phantom = cls(RemoteObject(connection, ENGINE_TARGET, PHANTOM_METHODS), connection, config)

        proxy = config.engine.get_proxy_options()
        if proxy is not None and proxy.proxy_type is not ProxyType.NONE:
            try:
                await phantom.set_proxy(
                    proxy.host,
                    proxy.port,
                    proxy.proxy_type.value,
                    proxy.username,
                    proxy.password,
                )
            except BaseException:
                await connection.disconnect()
                raise

        logger.info(f"Engine connected: {config.engine.ws_url}")
        return phantom

    @classmethod
    async def connect(
        cls,
        ws_url: str,
        config: Optional[PhantomPagesConfig] = None,
    ) -> "Phantom":
        """Connect to an engine bridge at ``ws_url``.

        Example:
            phantom = await Phantom.connect("ws://127.0.0.1:8910/engine")
        """
        config = config or PhantomPagesConfig()
        engine = config.engine.merge(EngineOptions(ws_url=ws_url))
        return await cls.create(PhantomPagesConfig(engine=engine, page=config.page))

    @property
    def remote(self) -> Any:
        return self._remote

    @property
    def connection(self) -> Optional[EngineConnection]:
        return self._connection

    @property
    def config(self) -> PhantomPagesConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state.state

    def create_page(self) -> Awaitable[WebPage]:
        """Open a new page in the engine."""
        self._state.ensure_open("create_page")
        return self._new_page(self._bridge.call("createPage"))

    async def _new_page(self, remote_page: Awaitable[Any]) -> WebPage:
        page = create_page_handle(await remote_page, self._config.page)
        logger.debug(f"Created {page!r}")
        return page

    def set_proxy(
        self,
        ip: str,
        port: Union[int, str],
        proxy_type: Union[str, ProxyType] = ProxyType.HTTP,
        username: str = "",
        password: str = "",
    ) -> asyncio.Future[Any]:
        """Route engine traffic through a proxy."""
        self._state.ensure_open("set_proxy")
        require_str(ip, "The proxy IP has to be a string")
        if isinstance(port, bool) or not isinstance(port, (int, str)):
            raise ValidationError("The proxy port has to be a string or number")
        if isinstance(proxy_type, ProxyType):
            proxy_type = proxy_type.value
        require_str(proxy_type, "The proxy type has to be a string")
        require_str(username, "The proxy username has to be a string")
        require_str(password, "The proxy password has to be a string")
        return self._bridge.call("setProxy", ip, port, proxy_type, username, password)

    def inject_js(self, filename: str) -> asyncio.Future[bool]:
        """Evaluate a local script file in the engine's context."""
        self._state.ensure_open("inject_js")
        require_str(filename, "Filename has to be a string", allow_empty=False)
        return self._bridge.call("injectJs", filename)

    def add_cookie(self, cookie: Union[Cookie, dict[str, Any]]) -> asyncio.Future[bool]:
        """Add a cookie to the engine-wide jar."""
        self._state.ensure_open("add_cookie")
        cookie = coerce_cookie(cookie)
        return self._bridge.call("addCookie", cookie.to_engine())

    def get_cookie(self, name: str) -> Awaitable[Optional[Cookie]]:
        """Find a cookie by exact name. None if absent."""
        self._state.ensure_open("get_cookie")
        require_str(name, "Cookie name has to be a string")
        return self._find_cookie(self._bridge.call("get", "cookies"), name)

    @staticmethod
    async def _find_cookie(cookies: Awaitable[Any], name: str) -> Optional[Cookie]:
        for cookie in await cookies or []:
            if isinstance(cookie, dict) and cookie.get("name") == name:
                return Cookie.from_engine(cookie)
        return None

    def delete_cookie(self, name: str) -> asyncio.Future[bool]:
        self._state.ensure_open("delete_cookie")
        require_str(name, "Cookie name has to be a string")
        return self._bridge.call("deleteCookie", name)

    def clear_cookies(self) -> asyncio.Future[Any]:
        self._state.ensure_open("clear_cookies")
        return self._bridge.call("clearCookies")

    def get(self, name: str) -> asyncio.Future[Any]:
        """Read an engine property (``version``, ``cookies``, ``libraryPath``...)."""
        self._state.ensure_open("get")
        check_readable(ENGINE_PROPERTIES, name)
        return self._bridge.call("get", name)

    def set(self, name: str, value: Any) -> asyncio.Future[Any]:
        self._state.ensure_open("set")
        check_writable(ENGINE_PROPERTIES, name)
        return self._bridge.call("set", name, value)

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe to an engine-level callback such as ``"onError"``."""
        self._state.ensure_open("on")
        require_str(event, "Event name has to be a string", allow_empty=False)
        if not callable(handler):
            raise ValidationError("Handler needs to be a function")
        self._remote.subscribe(event, handler)

    def has_exited(self) -> bool:
        return self._state.is_closed()

    is_closed = has_exited

    def exit(self) -> Awaitable[None]:
        """Shut the engine down. Safe to call more than once."""
        return self._state.close(self._teardown)

    close = exit

    async def _teardown(self) -> None:
        try:
            await self._bridge.call("exit")
        finally:
            release = getattr(self._remote, "release", None)
            if callable(release):
                release()
            if self._connection is not None:
                await self._connection.disconnect()
            logger.info("Engine exited")

    async def __aenter__(self) -> "Phantom":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.exit()


async def create(config: Optional[PhantomPagesConfig] = None) -> Phantom:
    """Connect to the engine. See :meth:`Phantom.create`."""
    return await Phantom.create(config)


async def connect(ws_url: str, config: Optional[PhantomPagesConfig] = None) -> Phantom:
    """Connect to the engine bridge at ``ws_url``. See :meth:`Phantom.connect`."""
    return await Phantom.connect(ws_url, config)


__all__ = ["Phantom", "connect", "create"]
