"""
Page handles for phantom-pages.

Provides the WebPage handle plus the load synchronizer and local resource
store it is built from.
"""

from phantom_pages.page.load import LoadObserver, LoadSynchronizer
from phantom_pages.page.resources import (
    LocalResource,
    ResourceStore,
    sanitize_relative_path,
    stage_resources,
)
from phantom_pages.page.webpage import WebPage, create_page_handle

__all__ = [
    "LoadObserver",
    "LoadSynchronizer",
    "LocalResource",
    "ResourceStore",
    "WebPage",
    "create_page_handle",
    "sanitize_relative_path",
    "stage_resources",
]
