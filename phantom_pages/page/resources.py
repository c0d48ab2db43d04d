"""
Local resource staging.

Documents opened from a temporary location can only reach local
stylesheets, scripts, fonts and images if those files sit next to them.
Resources are registered in memory with a virtual relative path and are
written into a staging directory right before the document is opened:

    store = ResourceStore()
    store.add(name="style", relative_path="css/site.css", content=b"body {}")
    await store.stage("/tmp/render-dir")    # -> /tmp/render-dir/css/site.css
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict

from phantom_pages.exceptions import StagingError, ValidationError
from phantom_pages.utils.fs import PathLike, is_dir, write_bytes

logger = logging.getLogger(__name__)

_DRIVE = re.compile(r"^[A-Za-z]:")


class LocalResource(BaseModel):
    """In-memory file made available to documents opened from a staging dir.

    Attributes:
        name: Lookup key. Not required to be unique.
        relative_path: Location under the staging root, e.g. ``css/site.css``.
        content: Raw file bytes.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    relative_path: str
    content: bytes


def _validate(name: Any, relative_path: Any, content: Any) -> LocalResource:
    if not isinstance(name, str) or name == "":
        raise ValidationError("Name of the resource must be a non-empty string")

    if not isinstance(relative_path, str) or relative_path == "":
        raise ValidationError("Relative path of the resource must be a non-empty string")

    if not isinstance(content, (bytes, bytearray, memoryview)):
        raise ValidationError("Resource content must be bytes")

    return LocalResource(name=name, relative_path=relative_path, content=bytes(content))


def sanitize_relative_path(path: str) -> PurePosixPath:
    """Normalize a resource path so it stays under the staging root.

    Backslashes become separators, repeated separators collapse, ``.``
    segments are dropped and ``..`` segments are resolved lexically.
    Leading separators and drive letters are stripped, so absolute paths
    are taken as relative to the root.

    Raises:
        StagingError: If ``..`` would climb above the root, the path
            contains a NUL byte, or nothing is left after normalizing.
    """
    if "\x00" in path:
        raise StagingError(f"Resource path contains a NUL byte: {path!r}")

    normalized = _DRIVE.sub("", path.replace("\\", "/"))

    parts: list[str] = []
    for segment in normalized.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise StagingError(f"Resource path escapes the staging root: {path!r}")
            parts.pop()
            continue
        parts.append(segment)

    if not parts:
        raise StagingError(f"Resource path is empty after normalization: {path!r}")

    return PurePosixPath(*parts)


def _walk_target(root: Path, relative: PurePosixPath, create: bool) -> Path:
    """Return ``root / relative`` after checking no component is a symlink.

    With ``create``, missing parent directories are made one level at a
    time, each checked before the next is created.
    """
    current = root
    for part in relative.parts[:-1]:
        current = current / part
        if current.is_symlink():
            raise StagingError(f"Resource path crosses a symlink: {current}")
        if create and not current.exists():
            current.mkdir()

    target = current / relative.parts[-1]
    if target.is_symlink():
        raise StagingError(f"Resource path is a symlink: {target}")
    return target


async def stage_resources(
    resources: list[LocalResource],
    root: PathLike,
) -> list[Path]:
    """Write ``resources`` into the existing directory ``root``.

    Every path is sanitized and checked before anything is written, so one
    bad path leaves the directory untouched. Symlinks below ``root`` are
    never followed. Resources are written in registration order; a later
    resource with the same path overwrites an earlier one.

    Returns:
        The written file paths, in order.

    Raises:
        StagingError: If ``root`` is not a directory or a path cannot be
            contained under it.
    """
    if not await is_dir(root):
        raise StagingError(f"Staging directory does not exist: {root}")

    root_path = await asyncio.to_thread(Path(root).resolve)
    planned = [(resource, sanitize_relative_path(resource.relative_path))
               for resource in resources]

    for resource, relative in planned:
        await asyncio.to_thread(_walk_target, root_path, relative, False)

    written: list[Path] = []
    for resource, relative in planned:
        target = await asyncio.to_thread(_walk_target, root_path, relative, True)
        await write_bytes(target, resource.content)
        logger.debug(f"Staged resource {resource.name!r} at {target}")
        written.append(target)

    return written


class ResourceStore:
    """Ordered, append-only collection of :class:`LocalResource`.

    Duplicate names are accepted. Lookup and removal act on the first
    resource registered under a name.
    """

    def __init__(self) -> None:
        self._resources: list[LocalResource] = []

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[LocalResource]:
        return iter(list(self._resources))

    def names(self) -> list[str]:
        return [r.name for r in self._resources]

    def add(
        self,
        resource: Optional[Union[LocalResource, dict[str, Any]]] = None,
        *,
        name: Any = None,
        relative_path: Any = None,
        content: Any = None,
    ) -> LocalResource:
        """Register a resource.

        Accepts a :class:`LocalResource`, a mapping with ``name``,
        ``relative_path`` and ``content`` keys, or the same as keywords.

        Raises:
            ValidationError: If name or relative path is not a non-empty
                string, or content is not bytes.
        """
        if isinstance(resource, LocalResource):
            self._resources.append(resource)
            return resource

        if resource is not None:
            if not isinstance(resource, dict):
                raise ValidationError("Resource must be a LocalResource or a mapping")
            name = resource.get("name")
            relative_path = resource.get("relative_path")
            content = resource.get("content")

        validated = _validate(name, relative_path, content)
        self._resources.append(validated)
        return validated

    def get(self, name: str) -> Optional[LocalResource]:
        """Return the first resource named ``name``, or None."""
        if not isinstance(name, str):
            raise ValidationError("Resource name must be a string")

        for resource in self._resources:
            if resource.name == name:
                return resource
        return None

    def remove(self, name: str) -> bool:
        """Remove the first resource named ``name``.

        Returns:
            True if a resource was removed.
        """
        if not isinstance(name, str):
            raise ValidationError("Resource name must be a string")

        for index, resource in enumerate(self._resources):
            if resource.name == name:
                del self._resources[index]
                return True
        return False

    def clear(self) -> bool:
        """Remove every resource. Returns True if anything was removed."""
        if not self._resources:
            return False
        self._resources = []
        return True

    async def stage(self, root: PathLike) -> list[Path]:
        """Write every registered resource under ``root``."""
        return await stage_resources(list(self._resources), root)


__all__ = [
    "LocalResource",
    "ResourceStore",
    "sanitize_relative_path",
    "stage_resources",
]
