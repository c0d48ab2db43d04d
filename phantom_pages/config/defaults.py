"""
Default configuration values for phantom-pages.

This module contains all default values used throughout the configuration system.
"""

from typing import Any

# Engine defaults
DEFAULT_ENGINE_URL = "ws://127.0.0.1:8910/engine"
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_MAX_MESSAGE_SIZE = 100 * 1024 * 1024
DEFAULT_PING_INTERVAL = 30.0
DEFAULT_PING_TIMEOUT = 10.0

# Page defaults
DEFAULT_LOAD_TIMEOUT_MS = 20000
DEFAULT_SELECTOR_TIMEOUT_MS = 10000
DEFAULT_RENDER_QUALITY = 100

# File config defaults
DEFAULT_CONFIG_FILENAME = "phantom-pages.config"
DEFAULT_CONFIG_EXTENSIONS = [".json", ".yaml", ".yml", ".toml"]
DEFAULT_CONFIG_SEARCH_PATHS = [
    ".",
    "~/.config/phantom-pages",
]

# Environment variable prefix
ENV_PREFIX = "PHANTOM_PAGES_"


def get_default_engine_config() -> dict[str, Any]:
    """Get default engine configuration as a dictionary."""
    return {
        "ws_url": DEFAULT_ENGINE_URL,
        "command_timeout": DEFAULT_COMMAND_TIMEOUT,
    }


def get_default_page_config() -> dict[str, Any]:
    """Get default page configuration as a dictionary."""
    return {
        "load_timeout_ms": DEFAULT_LOAD_TIMEOUT_MS,
        "selector_timeout_ms": DEFAULT_SELECTOR_TIMEOUT_MS,
        "render_quality": DEFAULT_RENDER_QUALITY,
        "temp_dir": None,
    }
