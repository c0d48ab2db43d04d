"""
Configuration file loader for phantom-pages.

This module provides functions to load configuration from JSON, YAML and
TOML files, merged with environment variables and explicit overrides.
"""

import json
import tomllib
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from phantom_pages.exceptions import ConfigurationError

from .defaults import (
    DEFAULT_CONFIG_EXTENSIONS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_SEARCH_PATHS,
)
from .env import load_env_config
from .options import PhantomPagesConfig


def _load_json(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_file(path: Union[str, Path]) -> dict[str, Any]:
    """Load configuration from file based on extension.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing, malformed or of an
            unsupported format
    """
    path = Path(path)

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()

    try:
        if suffix == ".json":
            data = _load_json(path)
        elif suffix in (".yaml", ".yml"):
            data = _load_yaml(path)
        elif suffix == ".toml":
            data = _load_toml(path)
        else:
            raise ConfigurationError(f"Unsupported configuration format: {suffix}")
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {path}")

    return data


def find_config_file(
    filename: str = DEFAULT_CONFIG_FILENAME,
    search_paths: Optional[list[str]] = None,
    extensions: Optional[list[str]] = None,
) -> Optional[Path]:
    """Find configuration file in search paths.

    Args:
        filename: Base filename without extension
        search_paths: Directories to search
        extensions: File extensions to try

    Returns:
        Path to config file or None if not found
    """
    if search_paths is None:
        search_paths = DEFAULT_CONFIG_SEARCH_PATHS

    if extensions is None:
        extensions = DEFAULT_CONFIG_EXTENSIONS

    for search_path in search_paths:
        search_dir = Path(search_path).expanduser()

        for ext in extensions:
            config_path = search_dir / f"{filename}{ext}"
            if config_path.exists():
                return config_path

    return None


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Deep merge multiple configuration dictionaries.

    Later configs take precedence over earlier ones.
    """
    result: dict[str, Any] = {}

    for config in configs:
        _deep_merge(result, config)

    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
    load_env: bool = True,
    auto_find: bool = False,
) -> PhantomPagesConfig:
    """Load configuration from all sources.

    Priority (highest to lowest):
    1. Programmatic overrides
    2. Environment variables
    3. Configuration file
    4. Default values

    Args:
        config_file: Path to configuration file
        overrides: Programmatic overrides
        load_env: Whether to load environment variables
        auto_find: Search the default locations when no file is given

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If a source cannot be read or the merged values
            do not validate
    """
    configs: list[dict[str, Any]] = []

    path = Path(config_file) if config_file else None
    if path is None and auto_find:
        path = find_config_file()
    if path is not None:
        configs.append(load_file(path))

    if load_env:
        configs.append(load_env_config())

    if overrides:
        configs.append(overrides)

    try:
        return PhantomPagesConfig.from_dict(merge_configs(*configs))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
