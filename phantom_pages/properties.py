"""
Readable and writable engine properties.

``page.get("title")`` and ``page.set("viewportSize", {...})`` pass the
property path straight to the engine, so unknown paths are rejected here
instead of failing deep inside the engine.
"""

from __future__ import annotations

from typing import NamedTuple

from phantom_pages.exceptions import ValidationError


class PropertyAccess(NamedTuple):
    readable: bool = True
    writable: bool = True


READ_ONLY = PropertyAccess(readable=True, writable=False)
READ_WRITE = PropertyAccess(readable=True, writable=True)

PropertyTable = dict[str, PropertyAccess]


def _table(read_only: list[str], read_write: list[str]) -> PropertyTable:
    table = {name: READ_ONLY for name in read_only}
    table.update({name: READ_WRITE for name in read_write})
    return table


PAGE_PROPERTIES: PropertyTable = _table(
    [
        "framePlainText",
        "frameUrl",
        "framesName",
        "plainText",
        "title",
        "url",
    ],
    [
        "canGoBack",
        "canGoForward",
        "clipRect",
        "clipRect.top",
        "clipRect.left",
        "clipRect.width",
        "clipRect.height",
        "content",
        "cookies",
        "customHeaders",
        "event",
        "focusedFrameName",
        "frameContent",
        "frameTitle",
        "framesCount",
        "libraryPath",
        "navigationLocked",
        "offlineStoragePath",
        "offlineStorageQuota",
        "ownsPages",
        "pages",
        "pagesWindowName",
        "paperSize",
        "paperSize.width",
        "paperSize.height",
        "paperSize.format",
        "paperSize.orientation",
        "paperSize.margin",
        "paperSize.margin.top",
        "paperSize.margin.right",
        "paperSize.margin.bottom",
        "paperSize.margin.left",
        "paperSize.header",
        "paperSize.header.height",
        "paperSize.header.contents",
        "paperSize.footer",
        "paperSize.footer.height",
        "paperSize.footer.contents",
        "scrollPosition",
        "scrollPosition.top",
        "scrollPosition.left",
        "settings",
        "settings.javascriptEnabled",
        "settings.loadImages",
        "settings.localToRemoteUrlAccessEnabled",
        "settings.userAgent",
        "settings.userName",
        "settings.password",
        "settings.XSSAuditingEnabled",
        "settings.webSecurityEnabled",
        "settings.resourceTimeout",
        "viewportSize",
        "viewportSize.width",
        "viewportSize.height",
        "windowName",
        "zoomFactor",
    ],
)

ENGINE_PROPERTIES: PropertyTable = _table(
    ["version", "scriptName", "args"],
    ["cookies", "cookiesEnabled", "libraryPath"],
)


def check_readable(table: PropertyTable, name: object) -> str:
    """Return ``name`` if it can be read, else raise :class:`ValidationError`."""
    access = table.get(name) if isinstance(name, str) else None
    if access is None or not access.readable:
        valid = ", ".join(k for k, v in table.items() if v.readable)
        raise ValidationError(f'"{name}" is not a valid key. Valid keys are: {valid}')
    return name  # type: ignore[return-value]


def check_writable(table: PropertyTable, name: object) -> str:
    """Return ``name`` if it can be set, else raise :class:`ValidationError`."""
    access = table.get(name) if isinstance(name, str) else None
    if access is None:
        valid = ", ".join(k for k, v in table.items() if v.writable)
        raise ValidationError(f'"{name}" is not a valid key. Valid keys are: {valid}')
    if not access.writable:
        raise ValidationError(f'"{name}" is a read-only property and cannot be set')
    return name  # type: ignore[return-value]


__all__ = [
    "ENGINE_PROPERTIES",
    "PAGE_PROPERTIES",
    "PropertyAccess",
    "PropertyTable",
    "check_readable",
    "check_writable",
]
