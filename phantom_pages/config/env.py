"""
Environment variable support for phantom-pages configuration.

This module provides functions to load configuration values from environment
variables with support for type conversion and nested keys.
"""

import os
from typing import Any, Optional, TypeVar, Union, get_args, get_origin

from phantom_pages.exceptions import ConfigurationError

from .defaults import ENV_PREFIX

T = TypeVar("T")


def get_env_key(key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a configuration key to environment variable name.

    Args:
        key: Configuration key (e.g., "page.load_timeout_ms")
        prefix: Environment variable prefix

    Returns:
        Environment variable name (e.g., "PHANTOM_PAGES_PAGE_LOAD_TIMEOUT_MS")
    """
    return f"{prefix}{key.upper().replace('.', '_').replace('-', '_')}"


def parse_bool(value: str) -> bool:
    """Parse string to boolean."""
    return value.lower() in ("true", "1", "yes", "on", "enabled")


def parse_value(value: str, target_type: Any) -> Any:
    """Parse string value to target type.

    Args:
        value: String value
        target_type: Target type

    Returns:
        Parsed value
    """
    if get_origin(target_type) is Union:
        # Optional[X] -> X
        non_none_types = [t for t in get_args(target_type) if t is not type(None)]
        if non_none_types:
            return parse_value(value, non_none_types[0])
        return value

    if target_type is bool:
        return parse_bool(value)

    if target_type is int:
        return int(value)

    if target_type is float:
        return float(value)

    return value


def get_env(
    key: str,
    default: Optional[T] = None,
    target_type: Optional[type] = None,
    prefix: str = ENV_PREFIX,
) -> Optional[Union[T, str]]:
    """Get configuration value from environment variable.

    Args:
        key: Configuration key (e.g., "engine.ws_url")
        default: Default value if not set
        target_type: Target type for parsing
        prefix: Environment variable prefix

    Returns:
        Parsed value or default
    """
    value = os.environ.get(get_env_key(key, prefix))

    if value is None:
        return default

    if target_type is not None:
        return parse_value(value, target_type)

    # Infer type from default
    if default is not None:
        return parse_value(value, type(default))

    return value


def get_env_bool(key: str, default: bool = False, prefix: str = ENV_PREFIX) -> bool:
    result = get_env(key, default, bool, prefix)
    return result if isinstance(result, bool) else default


def get_env_int(key: str, default: int = 0, prefix: str = ENV_PREFIX) -> int:
    result = get_env(key, default, int, prefix)
    return result if isinstance(result, int) else default


def get_env_float(key: str, default: float = 0.0, prefix: str = ENV_PREFIX) -> float:
    result = get_env(key, default, float, prefix)
    return result if isinstance(result, (int, float)) else default


def get_env_str(
    key: str, default: Optional[str] = None, prefix: str = ENV_PREFIX
) -> Optional[str]:
    return os.environ.get(get_env_key(key, prefix), default)


# Configuration key -> value type
ENV_MAPPINGS: dict[str, type] = {
    # Engine options
    "engine.ws_url": str,
    "engine.command_timeout": float,
    "engine.proxy": str,
    # Page options
    "page.load_timeout_ms": float,
    "page.selector_timeout_ms": float,
    "page.render_quality": int,
    "page.temp_dir": str,
}


def load_env_config(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Load configuration from predefined environment variables.

    Returns:
        Nested dictionary holding only the sections that were set

    Raises:
        ConfigurationError: If a variable cannot be parsed as its type
    """
    result: dict[str, Any] = {}

    for key, target_type in ENV_MAPPINGS.items():
        value = os.environ.get(get_env_key(key, prefix))
        if value is not None:
            section, option = key.split(".", 1)
            try:
                parsed = parse_value(value, target_type)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {get_env_key(key, prefix)}: {value!r}"
                ) from e
            result.setdefault(section, {})[option] = parsed

    return result
