"""
Rendering helpers for phantom-pages.

Example usage:

    from phantom_pages.media import render_html, render_to_buffer

    pdf = await render_to_buffer(page, "pdf")
    png = await render_to_buffer(page, "png", quality=80)

    # HTML string to PDF, with the page's local resources staged next to it
    pdf = await render_html(page, "<link href='css/site.css' rel='stylesheet'>", "/tmp/out")
"""

from phantom_pages.media.render import (
    BASE64_FORMATS,
    RenderFormat,
    open_html,
    render_html,
    render_to_buffer,
    resolve_format,
    validate_quality,
)

__all__ = [
    "BASE64_FORMATS",
    "RenderFormat",
    "open_html",
    "render_html",
    "render_to_buffer",
    "resolve_format",
    "validate_quality",
]
