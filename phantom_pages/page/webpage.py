"""
Web page handle.

Wraps one engine-side page. Every operation validates its arguments and
checks that the page is still open before anything is sent to the engine,
so misuse raises immediately instead of through the returned awaitable:

    page = await phantom.create_page()
    page.add_resource(name="css", relative_path="css/site.css", content=css)

    status = await page.open("https://example.com")
    pdf = await page.render_pdf()
    await page.close()

    page.render("out.png")      # InvalidStateError, raised without awaiting
"""

from __future__ import annotations

import asyncio
import logging
from os import PathLike, fspath
from typing import Any, Awaitable, Callable, Optional, Union

from phantom_pages.config.options import PageOptions
from phantom_pages.core.bridge import CompletionBridge
from phantom_pages.core.state import SessionState, SessionStateMachine
from phantom_pages.events.emitter import (
    EventEmitter,
    EventHandler,
    PageEvent,
    PageResponder,
    ResponderSlot,
)
from phantom_pages.exceptions import ValidationError
from phantom_pages.media import render as pipeline
from phantom_pages.models import Cookie, coerce_cookie
from phantom_pages.page.load import LoadObserver, LoadSynchronizer
from phantom_pages.page.resources import LocalResource, ResourceStore
from phantom_pages.properties import PAGE_PROPERTIES, check_readable, check_writable
from phantom_pages.utils.validation import require_str

logger = logging.getLogger(__name__)

StrPath = Union[str, "PathLike[str]"]

# Handled internally to drive the load synchronizer.
_BUILTIN_EVENTS = (PageEvent.LOAD_STARTED, PageEvent.LOAD_FINISHED)


def _require_path(value: Any, message: str) -> str:
    if isinstance(value, PathLike):
        value = fspath(value)
    return require_str(value, message, allow_empty=False)


def _require_int(value: Any, message: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(message)
    return value


def _require_timeout(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValidationError("Timeout has to be a positive number of milliseconds")
    return value


def _render_template(template: Any, options: Any) -> str:
    if template is None or not callable(getattr(template, "render", None)):
        raise ValidationError("Template argument is invalid - must have a render function")

    html = template.render() if options is None else template.render(options)

    if not isinstance(html, str):
        raise ValidationError("template.render must return a string")
    return html


def _trim(args: tuple[Any, ...]) -> list[Any]:
    # Engine methods take optional trailing arguments; drop unset ones.
    values = list(args)
    while values and values[-1] is None:
        values.pop()
    return values


class WebPage:
    """Handle for one engine page.

    Build instances with :func:`create_page_handle`; the engine handle does
    so for :meth:`Phantom.create_page` and for pages opened by scripts.

    Attributes:
        remote: The engine-side page object.
        options: Page options in effect.
    """

    def __init__(self, remote: Any, options: Optional[PageOptions] = None) -> None:
        self._remote = remote
        self._options = options or PageOptions()
        self._bridge = CompletionBridge(remote)
        self._state = SessionStateMachine("page")
        self._load = LoadSynchronizer(self._options.load_timeout_ms)
        self._resources = ResourceStore()
        self._events = EventEmitter()
        self._responders = {r: ResponderSlot(r.engine_name) for r in PageResponder}
        self._subscribed: set[str] = set()

        self._subscribe(PageEvent.LOAD_STARTED.engine_name, self._handle_load_started)
        self._subscribe(PageEvent.LOAD_FINISHED.engine_name, self._handle_load_finished)

    def __repr__(self) -> str:
        return f"WebPage({self._remote!r}, state={self._state.state.value})"

    @property
    def remote(self) -> Any:
        return self._remote

    @property
    def options(self) -> PageOptions:
        return self._options

    @property
    def state(self) -> SessionState:
        return self._state.state

    @property
    def resources(self) -> ResourceStore:
        return self._resources

    @property
    def load(self) -> LoadSynchronizer:
        return self._load

    # ------------------------------------------------------------------
    # Engine callbacks
    # ------------------------------------------------------------------

    def _subscribe(self, engine_name: str, handler: EventHandler) -> None:
        if engine_name in self._subscribed:
            return
        self._subscribed.add(engine_name)
        self._remote.subscribe(engine_name, handler)

    def _handle_load_started(self, *args: Any) -> None:
        self._load.navigation_started()
        self._events.emit(PageEvent.LOAD_STARTED, *args)

    def _handle_load_finished(self, status: str = "fail", *args: Any) -> None:
        self._load.load_finished(status)
        self._events.emit(PageEvent.LOAD_FINISHED, status, *args)

    def _handle_page_created(self, remote_page: Any, *args: Any) -> None:
        page = create_page_handle(remote_page, self._options)
        self._events.emit(PageEvent.PAGE_CREATED, page, *args)

    def _forward(self, event: PageEvent) -> EventHandler:
        def forward(*args: Any) -> None:
            self._events.emit(event, *args)
        return forward

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: Union[str, PageEvent], handler: EventHandler) -> "WebPage":
        """Subscribe to a page notification such as ``"console_message"``.

        Handlers run in registration order; any number may be registered.

        Raises:
            ValidationError: If the event is unknown or handler not callable.
        """
        self._state.ensure_open("on")

        try:
            page_event = PageEvent(event)
        except ValueError:
            valid = ", ".join(e.value for e in PageEvent)
            raise ValidationError(f'Unknown event "{event}". Valid events are: {valid}') from None

        if not callable(handler):
            raise ValidationError("Handler needs to be a function")

        if page_event is PageEvent.PAGE_CREATED:
            self._subscribe(page_event.engine_name, self._handle_page_created)
        elif page_event not in _BUILTIN_EVENTS:
            self._subscribe(page_event.engine_name, self._forward(page_event))

        self._events.on(page_event, handler)
        return self

    def off(self, event: Union[str, PageEvent], handler: Optional[EventHandler] = None) -> "WebPage":
        """Remove one handler, or all handlers of ``event``."""
        self._events.off(event, handler)
        return self

    def on_load_finished(self, observer: LoadObserver) -> None:
        """Call ``observer(status)`` once for every completed navigation."""
        self._state.ensure_open("on_load_finished")
        if not callable(observer):
            raise ValidationError("Handler needs to be a function")
        self._load.add_observer(observer)

    def _set_responder(self, responder: PageResponder, handler: Optional[EventHandler]) -> None:
        self._state.ensure_open(f"on_{responder.value}")
        slot = self._responders[responder]

        if handler is None:
            slot.clear()
            return

        if not callable(handler):
            raise ValidationError("Handler needs to be a function")

        slot.set(handler)
        self._subscribe(responder.engine_name, slot.respond)

    def on_confirm(self, handler: Optional[Callable[[str], bool]]) -> None:
        """Answer ``confirm()`` dialogs; the handler returns True or False."""
        self._set_responder(PageResponder.CONFIRM, handler)

    def on_prompt(self, handler: Optional[Callable[[str, str], str]]) -> None:
        """Answer ``prompt()`` dialogs with the handler's return value."""
        self._set_responder(PageResponder.PROMPT, handler)

    def on_file_picker(self, handler: Optional[Callable[[str], str]]) -> None:
        """Return the filename to pick for file inputs."""
        self._set_responder(PageResponder.FILE_PICKER, handler)

    def on_callback(self, handler: Optional[Callable[..., Any]]) -> None:
        """Receive ``window.callPhantom(...)`` calls and return their value."""
        self._set_responder(PageResponder.CALLBACK, handler)

    # ------------------------------------------------------------------
    # Local resources
    # ------------------------------------------------------------------

    def add_resource(
        self,
        resource: Optional[Union[LocalResource, dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> LocalResource:
        """Register a file to stage next to HTML opened with a staging dir."""
        return self._resources.add(resource, **kwargs)

    def get_resource(self, name: str) -> Optional[LocalResource]:
        return self._resources.get(name)

    def remove_resource(self, name: str) -> bool:
        return self._resources.remove(name)

    def clear_resources(self) -> bool:
        return self._resources.clear()

    add_local_resource = add_resource
    get_local_resource = get_resource
    remove_local_resource = remove_resource
    clear_local_resources = clear_resources

    def stage_resources(self, root: StrPath) -> Awaitable[list[Any]]:
        """Write every registered resource under ``root``."""
        return self._resources.stage(root)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def open(
        self,
        url: str,
        method_or_settings: Optional[Union[str, dict[str, Any]]] = None,
        data: Optional[str] = None,
    ) -> asyncio.Future[str]:
        """Navigate to ``url``.

        Args:
            url: Address or local path to open.
            method_or_settings: HTTP method, or a settings dict with
                ``operation``, ``data``, ``headers`` and ``encoding``.
            data: Request body when a method is given.

        Returns:
            Future resolving to the status, ``"success"`` or ``"fail"``.
        """
        self._state.ensure_open("open")
        require_str(url, "URL has to be a string")

        if isinstance(method_or_settings, dict):
            args = [url, method_or_settings]
        else:
            if method_or_settings is not None:
                require_str(method_or_settings, "Method has to be a string or a settings dict")
            args = [url, *_trim((method_or_settings, data))]

        self._load.navigation_started()
        return self._bridge.call("open", *args)

    def open_url(
        self,
        url: str,
        http_conf: Optional[Union[str, dict[str, Any]]] = None,
        settings: Optional[dict[str, Any]] = None,
    ) -> asyncio.Future[Any]:
        self._state.ensure_open("open_url")
        require_str(url, "URL has to be a string")
        self._load.navigation_started()
        return self._bridge.call("openUrl", url, *_trim((http_conf, settings)))

    def open_html(self, html: str, staging_dir: Optional[StrPath] = None) -> Awaitable[str]:
        """Open an HTML string, staging local resources if a dir is given.

        Returns:
            Awaitable resolving to the navigation status.
        """
        self._state.ensure_open("open_html")
        require_str(html, "HTML has to be a string")
        if staging_dir is not None:
            staging_dir = _require_path(staging_dir, "Render directory has to be a path")
        return pipeline.open_html(self, html, staging_dir, temp_root=self._options.temp_dir)

    def open_template(
        self,
        template: Any,
        staging_dir: Optional[Union[StrPath, dict[str, Any]]] = None,
        options: Any = None,
    ) -> Awaitable[str]:
        """Render ``template.render(options)`` and open the result.

        A dict given as ``staging_dir`` is taken as the template options.
        """
        self._state.ensure_open("open_template")
        if isinstance(staging_dir, dict):
            staging_dir, options = None, staging_dir
        return self.open_html(_render_template(template, options), staging_dir)

    def set_content(self, content: str, url: str) -> asyncio.Future[Any]:
        self._state.ensure_open("set_content")
        require_str(content, "The content of the page must be a string")
        require_str(url, "The url must be a string")
        return self._bridge.call("setContent", content, url)

    def reload(self) -> asyncio.Future[Any]:
        self._state.ensure_open("reload")
        return self._bridge.call("reload")

    def stop(self) -> asyncio.Future[Any]:
        self._state.ensure_open("stop")
        return self._bridge.call("stop")

    def go(self, index: int) -> asyncio.Future[Any]:
        """Move ``index`` steps through history (negative goes back)."""
        self._state.ensure_open("go")
        _require_int(index, "History index must be an integer")
        return self._bridge.call("go", index)

    def go_back(self) -> asyncio.Future[Any]:
        self._state.ensure_open("go_back")
        return self._bridge.call("goBack")

    def go_forward(self) -> asyncio.Future[Any]:
        self._state.ensure_open("go_forward")
        return self._bridge.call("goForward")

    def wait_for_load(self, timeout_ms: Optional[float] = None) -> asyncio.Future[Optional[str]]:
        """Wait until the navigation in flight finishes.

        Resolves right away when nothing is loading. A timeout only ends the
        wait; the navigation continues.

        Raises:
            LoadTimeoutError: Through the future, when the budget runs out.
        """
        self._state.ensure_open("wait_for_load")
        if timeout_ms is not None:
            _require_timeout(timeout_ms)
        return self._load.wait_for_load(timeout_ms)

    def wait_for_selector(
        self,
        selector: str,
        timeout_ms: Optional[float] = None,
    ) -> asyncio.Future[Any]:
        """Wait until ``selector`` matches an element in the page."""
        self._state.ensure_open("wait_for_selector")
        require_str(selector, "The selector has to be a string")
        if timeout_ms is None:
            timeout_ms = self._options.selector_timeout_ms
        else:
            _require_timeout(timeout_ms)
        return self._bridge.call("waitForSelector", selector, timeout_ms)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, js_function: str, *args: Any) -> asyncio.Future[Any]:
        """Run a JavaScript function in the page and return its result.

        Args:
            js_function: Function source, e.g. ``"function(a) { return a * 2; }"``.
            *args: JSON-serializable arguments for the function.
        """
        self._state.ensure_open("evaluate")
        require_str(js_function, "First argument must be the function source", allow_empty=False)
        return self._bridge.call("evaluate", js_function, *args)

    def evaluate_async(
        self,
        js_function: str,
        delay_ms: int = 0,
        *args: Any,
    ) -> asyncio.Future[Any]:
        self._state.ensure_open("evaluate_async")
        require_str(js_function, "First argument must be the function source", allow_empty=False)
        _require_int(delay_ms, "Delay has to be an integer")
        return self._bridge.call("evaluateAsync", js_function, delay_ms, *args)

    def evaluate_javascript(self, source: str) -> asyncio.Future[Any]:
        self._state.ensure_open("evaluate_javascript")
        require_str(source, "JavaScript has to be a string")
        return self._bridge.call("evaluateJavaScript", source)

    def include_js(self, url: str) -> asyncio.Future[Any]:
        """Load a remote script into the page."""
        self._state.ensure_open("include_js")
        require_str(url, "URL has to be a string")
        return self._bridge.call("includeJs", url)

    def inject_js(self, filename: StrPath) -> asyncio.Future[bool]:
        """Evaluate a local script file in the page."""
        self._state.ensure_open("inject_js")
        filename = _require_path(filename, "Filename must be a string")
        return self._bridge.call("injectJs", filename)

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    def add_cookie(self, cookie: Union[Cookie, dict[str, Any]]) -> asyncio.Future[bool]:
        """Add a cookie to the page. ``name``, ``value`` and ``path`` are required."""
        self._state.ensure_open("add_cookie")
        cookie = coerce_cookie(cookie, require_path=True)
        return self._bridge.call("addCookie", cookie.to_engine())

    def delete_cookie(self, name: str) -> asyncio.Future[bool]:
        self._state.ensure_open("delete_cookie")
        require_str(name, "Name needs to be a string")
        return self._bridge.call("deleteCookie", name)

    def clear_cookies(self) -> asyncio.Future[Any]:
        self._state.ensure_open("clear_cookies")
        return self._bridge.call("clearCookies")

    def get_cookie(self, name: str) -> Awaitable[Optional[Cookie]]:
        """Find a page cookie by name, ignoring case. None if absent."""
        self._state.ensure_open("get_cookie")
        require_str(name, "Name needs to be a string")
        return self._find_cookie(self._bridge.call("get", "cookies"), name.lower())

    @staticmethod
    async def _find_cookie(cookies: Awaitable[Any], name: str) -> Optional[Cookie]:
        for cookie in await cookies or []:
            if isinstance(cookie, dict) and str(cookie.get("name", "")).lower() == name:
                return Cookie.from_engine(cookie)
        return None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def get(self, name: str) -> asyncio.Future[Any]:
        """Read a page property such as ``"title"`` or ``"viewportSize"``."""
        self._state.ensure_open("get")
        check_readable(PAGE_PROPERTIES, name)
        return self._bridge.call("get", name)

    def set(self, name: str, value: Any) -> asyncio.Future[Any]:
        """Write a page property such as ``"paperSize"``."""
        self._state.ensure_open("set")
        check_writable(PAGE_PROPERTIES, name)
        return self._bridge.call("set", name, value)

    def set_fn(self, name: str, js_function: str) -> asyncio.Future[Any]:
        """Install a JavaScript function as a page-side handler."""
        self._state.ensure_open("set_fn")
        require_str(name, "The event name must be a string")
        require_str(js_function, "The event handler must be function source", allow_empty=False)
        return self._bridge.call("setFn", name, js_function)

    # ------------------------------------------------------------------
    # Frames and input
    # ------------------------------------------------------------------

    def switch_to_frame(self, position: Union[int, str]) -> asyncio.Future[bool]:
        """Switch to a child frame by index or name."""
        self._state.ensure_open("switch_to_frame")
        if isinstance(position, bool) or not isinstance(position, (int, str)):
            raise ValidationError("Frame position must be an integer or a frame name")
        return self._bridge.call("switchToFrame", position)

    def switch_to_main_frame(self) -> asyncio.Future[Any]:
        self._state.ensure_open("switch_to_main_frame")
        return self._bridge.call("switchToMainFrame")

    def switch_to_parent_frame(self) -> asyncio.Future[bool]:
        self._state.ensure_open("switch_to_parent_frame")
        return self._bridge.call("switchToParentFrame")

    def switch_to_focused_frame(self) -> asyncio.Future[Any]:
        self._state.ensure_open("switch_to_focused_frame")
        return self._bridge.call("switchToFocusedFrame")

    def send_event(
        self,
        event_type: str,
        mouse_x_or_keys: Any = None,
        mouse_y: Optional[int] = None,
        button: Optional[str] = None,
        modifier: Optional[int] = None,
    ) -> asyncio.Future[Any]:
        """Send a mouse or keyboard event, e.g. ``send_event("click", 10, 20)``."""
        self._state.ensure_open("send_event")
        require_str(event_type, "Event type has to be a string", allow_empty=False)
        return self._bridge.call(
            "sendEvent", event_type, *_trim((mouse_x_or_keys, mouse_y, button, modifier))
        )

    def upload_file(self, selector: str, filename: StrPath) -> asyncio.Future[Any]:
        self._state.ensure_open("upload_file")
        require_str(selector, "Selector has to be a string")
        filename = _require_path(filename, "Filename has to be a string")
        return self._bridge.call("uploadFile", selector, filename)

    def clear_memory_cache(self) -> asyncio.Future[Any]:
        self._state.ensure_open("clear_memory_cache")
        return self._bridge.call("clearMemoryCache")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(
        self,
        path: StrPath,
        fmt: Optional[Union[str, pipeline.RenderFormat]] = None,
        quality: Optional[int] = None,
    ) -> asyncio.Future[Any]:
        """Render the page to a file.

        Args:
            path: Output file.
            fmt: ``pdf``, ``png``, ``jpeg`` or ``gif``. Taken from the file
                extension when omitted.
            quality: 0-100, defaults to the page options' render quality.
        """
        self._state.ensure_open("render")
        path = _require_path(path, "Filename has to be a string")
        render_format = pipeline.resolve_format(path, fmt)
        if quality is None:
            quality = self._options.render_quality
        settings = {"format": render_format.value, "quality": pipeline.validate_quality(quality)}
        return self._bridge.call("render", path, settings)

    render_to_file = render

    def render_base64(self, fmt: Union[str, pipeline.RenderFormat] = "png") -> asyncio.Future[str]:
        """Render the page as a base64 string (png, gif or jpeg)."""
        self._state.ensure_open("render_base64")
        render_format = pipeline.resolve_format(fmt=fmt, allowed=pipeline.BASE64_FORMATS)
        return self._bridge.call("renderBase64", render_format.value)

    def render_to_buffer(
        self,
        fmt: Union[str, pipeline.RenderFormat] = "pdf",
        quality: Optional[int] = None,
    ) -> Awaitable[bytes]:
        """Render the page into memory. No temporary file outlives the call."""
        self._state.ensure_open("render_to_buffer")
        render_format = pipeline.resolve_format(fmt=fmt)
        if quality is not None:
            pipeline.validate_quality(quality)
        return pipeline.render_to_buffer(self, render_format, quality, self._options.temp_dir)

    def render_pdf(self) -> Awaitable[bytes]:
        """Render the page as PDF bytes."""
        self._state.ensure_open("render_pdf")
        return self.render_to_buffer(pipeline.RenderFormat.PDF)

    render_pdf_buffer = render_pdf

    def render_html(self, html: str, staging_dir: Optional[StrPath] = None) -> Awaitable[bytes]:
        """Open an HTML string and render it as PDF bytes.

        Raises:
            ExternalEngineError: Through the awaitable, if the document
                fails to load. Nothing is rendered then.
        """
        self._state.ensure_open("render_html")
        require_str(html, "HTML has to be a string")
        if staging_dir is not None:
            staging_dir = _require_path(staging_dir, "Render directory has to be a path")
        return pipeline.render_html(self, html, staging_dir, temp_root=self._options.temp_dir)

    def render_template(
        self,
        template: Any,
        staging_dir: Optional[Union[StrPath, dict[str, Any]]] = None,
        options: Any = None,
    ) -> Awaitable[bytes]:
        self._state.ensure_open("render_template")
        if isinstance(staging_dir, dict):
            staging_dir, options = None, staging_dir
        return self.render_html(_render_template(template, options), staging_dir)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def is_closed(self) -> bool:
        return self._state.is_closed()

    def close(self) -> Awaitable[None]:
        """Close the page. Safe to call more than once."""
        return self._state.close(self._teardown)

    async def _teardown(self) -> None:
        self._load.cancel_waiters()
        try:
            await self._bridge.call("close")
        finally:
            self._release_remote()
            self._events.remove_all_listeners()

    def _release_remote(self) -> None:
        release = getattr(self._remote, "release", None)
        if callable(release):
            release()

    async def __aenter__(self) -> "WebPage":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def create_page_handle(remote: Any, options: Optional[PageOptions] = None) -> WebPage:
    """Build a :class:`WebPage` around an engine-side page object."""
    return WebPage(remote, options)


__all__ = ["WebPage", "create_page_handle"]
