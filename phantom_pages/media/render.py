"""
Render pipeline for phantom-pages.

The engine can only render to a named file. Buffers are produced by
rendering into a scoped temporary file and reading it back; HTML strings
are written into a directory the engine can open before rendering.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from phantom_pages.config.defaults import DEFAULT_RENDER_QUALITY
from phantom_pages.exceptions import ExternalEngineError, StagingError, ValidationError
from phantom_pages.utils.fs import (
    PathLike,
    delete_file,
    generate_filename,
    is_dir,
    read_bytes,
    temp_dir,
    temp_file,
    write_text,
)
from phantom_pages.utils.validation import is_between

if TYPE_CHECKING:
    from phantom_pages.page.webpage import WebPage

logger = logging.getLogger(__name__)


class RenderFormat(str, Enum):
    """Output formats of the engine's file renderer."""

    PDF = "pdf"
    PNG = "png"
    JPEG = "jpeg"
    GIF = "gif"


BASE64_FORMATS = (RenderFormat.PNG, RenderFormat.GIF, RenderFormat.JPEG)


def _valid_names(formats: tuple[RenderFormat, ...]) -> str:
    return ", ".join(f.value for f in formats)


def resolve_format(
    path: Optional[str] = None,
    fmt: Optional[Union[str, RenderFormat]] = None,
    *,
    allowed: tuple[RenderFormat, ...] = tuple(RenderFormat),
) -> RenderFormat:
    """Pick the render format from ``fmt`` or the extension of ``path``.

    Formats are matched case-insensitively.

    Raises:
        ValidationError: If no allowed format can be determined.
    """
    if isinstance(fmt, RenderFormat):
        name = fmt.value
    elif fmt:
        if not isinstance(fmt, str):
            raise ValidationError("Format has to be a string")
        name = fmt.lower()
    elif path:
        name = os.path.splitext(path)[1].lstrip(".").lower()
    else:
        name = ""

    for candidate in allowed:
        if candidate.value == name:
            return candidate

    raise ValidationError(f'Format is invalid: "{name}". Valid are: {_valid_names(allowed)}')


def validate_quality(quality: Any = None) -> int:
    """Return ``quality`` as an int in ``0..100``; None means full quality.

    Raises:
        ValidationError: If the value is not an integer within range.
    """
    if quality is None:
        return DEFAULT_RENDER_QUALITY

    if not is_between(-1, 101, quality) or float(quality) != int(float(quality)):
        raise ValidationError("Quality has to be a number between 0 and 100")

    return int(float(quality))


async def render_to_buffer(
    page: "WebPage",
    fmt: Union[str, RenderFormat] = RenderFormat.PDF,
    quality: Optional[int] = None,
    temp_root: Optional[PathLike] = None,
) -> bytes:
    """Render ``page`` into memory through a temporary file.

    The temporary file is removed whether rendering and reading succeed or
    not; a failed removal is logged and never hides the original error.
    """
    render_format = resolve_format(fmt=fmt)

    async with temp_file(f".{render_format.value}", temp_root) as artifact:
        await page.render(str(artifact.path), render_format, quality)
        data = await read_bytes(artifact.path)

    logger.debug(f"Rendered {len(data)} bytes of {render_format.value}")
    return data


async def _open_document(page: "WebPage", path: Path) -> str:
    status = await page.open(path.absolute().as_uri())
    await page.wait_for_load()
    return status


async def open_html(
    page: "WebPage",
    html: str,
    staging_dir: Optional[PathLike] = None,
    *,
    temp_root: Optional[PathLike] = None,
) -> str:
    """Open an HTML string as a document.

    With ``staging_dir``, the page's local resources are staged into that
    directory and the document is written next to them, so relative
    references resolve. The document file is deleted afterwards; staged
    resources are left in place. Without it, the document alone is written
    to a fresh temporary directory that is removed afterwards.

    Returns:
        The navigation status reported by the engine.

    Raises:
        StagingError: If ``staging_dir`` is not an existing directory.
    """
    filename = f"{generate_filename()}.html"

    if staging_dir is None:
        async with temp_dir(temp_root) as artifact:
            path = artifact.path / filename
            await write_text(path, html)
            return await _open_document(page, path)

    if not await is_dir(staging_dir):
        raise StagingError(f"Render directory is not a directory: {staging_dir}")

    await page.stage_resources(staging_dir)

    path = Path(staging_dir) / filename
    await write_text(path, html)
    try:
        return await _open_document(page, path)
    finally:
        try:
            await delete_file(path)
        except OSError as e:
            logger.warning(f"Failed to remove staged document {path}: {e}")


async def render_html(
    page: "WebPage",
    html: str,
    staging_dir: Optional[PathLike] = None,
    *,
    temp_root: Optional[PathLike] = None,
) -> bytes:
    """Open ``html`` and render it to a PDF buffer.

    Raises:
        ExternalEngineError: If the document did not load successfully.
            Nothing is rendered in that case.
    """
    status = await open_html(page, html, staging_dir, temp_root=temp_root)

    if status != "success":
        raise ExternalEngineError(f"Failed to open HTML document (status: {status})", status=status)

    return await render_to_buffer(page, RenderFormat.PDF, temp_root=temp_root)


__all__ = [
    "BASE64_FORMATS",
    "RenderFormat",
    "open_html",
    "render_html",
    "render_to_buffer",
    "resolve_format",
    "validate_quality",
]
