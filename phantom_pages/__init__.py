"""
phantom-pages: asyncio driver for a headless page rendering engine.

Opens pages in an out-of-process engine, manages cookies and local
resources, and renders documents to PDF or images.

Basic usage:
    from phantom_pages import Phantom

    async with await Phantom.connect("ws://127.0.0.1:8910/engine") as phantom:
        page = await phantom.create_page()
        await page.open("https://example.com")
        pdf = await page.render_pdf()

HTML with local resources:
    from phantom_pages import Phantom, load_config

    phantom = await Phantom.create(load_config("phantom-pages.config.toml"))
    page = await phantom.create_page()
    page.add_resource(name="style", relative_path="css/site.css", content=css_bytes)

    pdf = await page.render_html(
        '<link rel="stylesheet" href="css/site.css"><h1>Report</h1>',
        staging_dir="/tmp/report",
    )
    await phantom.exit()
"""

__version__ = "0.1.0"
__license__ = "MIT"

from phantom_pages.exceptions import (
    ConfigurationError,
    ExternalEngineError,
    InvalidStateError,
    LoadTimeoutError,
    PhantomPagesError,
    StagingError,
    ValidationError,
)

from phantom_pages.models import Cookie

from phantom_pages.config import (
    EngineOptions,
    PageOptions,
    PhantomPagesConfig,
    ProxyOptions,
    ProxyType,
    load_config,
)

from phantom_pages.core import (
    CompletionBridge,
    SessionState,
    SessionStateMachine,
    call_async,
)

from phantom_pages.events import PageEvent, PageResponder

from phantom_pages.page import (
    LocalResource,
    LoadSynchronizer,
    ResourceStore,
    WebPage,
    create_page_handle,
)

from phantom_pages.media import RenderFormat

from phantom_pages.engine import (
    EngineConnection,
    EngineError,
    Phantom,
    RemoteObject,
    connect,
    create,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "PhantomPagesError",
    "ValidationError",
    "InvalidStateError",
    "ExternalEngineError",
    "LoadTimeoutError",
    "StagingError",
    "ConfigurationError",
    "EngineError",
    # Models
    "Cookie",
    "LocalResource",
    # Config
    "PhantomPagesConfig",
    "EngineOptions",
    "PageOptions",
    "ProxyOptions",
    "ProxyType",
    "load_config",
    # Core
    "CompletionBridge",
    "call_async",
    "SessionState",
    "SessionStateMachine",
    "LoadSynchronizer",
    "ResourceStore",
    # Events
    "PageEvent",
    "PageResponder",
    # Rendering
    "RenderFormat",
    # Handles
    "Phantom",
    "WebPage",
    "create_page_handle",
    "EngineConnection",
    "RemoteObject",
    "connect",
    "create",
]
