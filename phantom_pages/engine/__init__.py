"""
Engine connection and handle.

Example usage:
    from phantom_pages.engine import Phantom

    async with await Phantom.connect("ws://127.0.0.1:8910/engine") as phantom:
        page = await phantom.create_page()
"""

from phantom_pages.engine.connection import (
    ENGINE_TARGET,
    PAGE_METHODS,
    PHANTOM_METHODS,
    EngineConnection,
    EngineError,
    RemoteObject,
)
from phantom_pages.engine.phantom import Phantom, connect, create

__all__ = [
    "ENGINE_TARGET",
    "EngineConnection",
    "EngineError",
    "PAGE_METHODS",
    "PHANTOM_METHODS",
    "Phantom",
    "RemoteObject",
    "connect",
    "create",
]
