"""
Configuration module for phantom-pages.

This module provides:
- Strongly-typed option classes (EngineOptions, PageOptions) via Pydantic
- Configuration file loading (JSON, YAML, TOML)
- Environment variable support

Example usage:
    from phantom_pages.config import (
        EngineOptions,
        PageOptions,
        PhantomPagesConfig,
        load_config,
    )

    # Load from file with environment overrides
    config = load_config("phantom-pages.config.toml")

    # Create programmatically
    config = PhantomPagesConfig(
        engine=EngineOptions(ws_url="ws://127.0.0.1:8910/engine"),
        page=PageOptions(load_timeout_ms=5000),
    )

Environment variables:
    PHANTOM_PAGES_ENGINE_WS_URL=ws://127.0.0.1:8910/engine
    PHANTOM_PAGES_PAGE_LOAD_TIMEOUT_MS=5000
    PHANTOM_PAGES_PAGE_TEMP_DIR=/var/tmp/renders
"""

from phantom_pages.exceptions import ConfigurationError

from .defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_ENGINE_URL,
    DEFAULT_LOAD_TIMEOUT_MS,
    DEFAULT_RENDER_QUALITY,
    DEFAULT_SELECTOR_TIMEOUT_MS,
    ENV_PREFIX,
    get_default_engine_config,
    get_default_page_config,
)
from .env import (
    ENV_MAPPINGS,
    get_env,
    get_env_bool,
    get_env_float,
    get_env_int,
    get_env_key,
    get_env_str,
    load_env_config,
)
from .loader import (
    find_config_file,
    load_config,
    load_file,
    merge_configs,
)
from .options import (
    EngineOptions,
    PageOptions,
    PhantomPagesConfig,
    ProxyOptions,
    ProxyType,
)

__all__ = [
    "PhantomPagesConfig",
    "EngineOptions",
    "PageOptions",
    "ProxyOptions",
    "ProxyType",
    "ConfigurationError",
    "load_config",
    "load_file",
    "find_config_file",
    "merge_configs",
    "get_env",
    "get_env_bool",
    "get_env_int",
    "get_env_float",
    "get_env_str",
    "get_env_key",
    "load_env_config",
    "ENV_MAPPINGS",
    "ENV_PREFIX",
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_ENGINE_URL",
    "DEFAULT_LOAD_TIMEOUT_MS",
    "DEFAULT_RENDER_QUALITY",
    "DEFAULT_SELECTOR_TIMEOUT_MS",
    "get_default_engine_config",
    "get_default_page_config",
]
