"""
Filesystem helpers.

Blocking calls run in a worker thread via ``asyncio.to_thread`` so the event
loop keeps serving engine traffic while files are read or written.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import secrets
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def generate_filename() -> str:
    """Return a filename-safe random id suffixed with the current time in ms."""
    return f"{secrets.token_urlsafe(32)}_{int(time.time() * 1000)}"


async def read_bytes(path: PathLike) -> bytes:
    return await asyncio.to_thread(Path(path).read_bytes)


async def write_bytes(path: PathLike, data: bytes) -> None:
    await asyncio.to_thread(Path(path).write_bytes, data)


async def write_text(path: PathLike, text: str) -> None:
    await asyncio.to_thread(Path(path).write_text, text, "utf-8")


async def delete_file(path: PathLike) -> None:
    await asyncio.to_thread(os.remove, path)


async def mkdir_recursive(path: PathLike) -> None:
    """Create ``path`` and its parents; an existing directory is fine."""
    await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)


async def is_dir(path: PathLike) -> bool:
    return await asyncio.to_thread(os.path.isdir, path)


@dataclass
class TempArtifact:
    """A temporary file or directory with an exactly-once release.

    Attributes:
        path: Location of the artifact.
        is_dir: Whether the artifact is a directory tree.
    """

    path: Path
    is_dir: bool = False
    _released: bool = field(default=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Delete the artifact. Only the first call has an effect."""
        if self._released:
            return
        self._released = True

        if self.is_dir:
            shutil.rmtree(self.path)
        else:
            with contextlib.suppress(FileNotFoundError):
                os.remove(self.path)


def create_unique_temp_file(
    suffix: str = "",
    dir: Optional[PathLike] = None,
) -> TempArtifact:
    """Create an empty, uniquely named temporary file."""
    fd, name = tempfile.mkstemp(suffix=suffix, prefix="phantom-pages-", dir=dir)
    os.close(fd)
    return TempArtifact(Path(name))


def create_unique_temp_dir(dir: Optional[PathLike] = None) -> TempArtifact:
    """Create a uniquely named temporary directory."""
    name = tempfile.mkdtemp(prefix="phantom-pages-", dir=dir)
    return TempArtifact(Path(name), is_dir=True)


async def release_quietly(artifact: TempArtifact) -> None:
    """Release ``artifact``, logging instead of raising on failure."""
    try:
        await asyncio.to_thread(artifact.release)
    except OSError as e:
        logger.warning(f"Failed to remove temporary {artifact.path}: {e}")


@contextlib.asynccontextmanager
async def _scoped(factory: Callable[[], TempArtifact]) -> AsyncIterator[TempArtifact]:
    artifact = await asyncio.to_thread(factory)
    logger.debug(f"Created temporary {artifact.path}")
    try:
        yield artifact
    finally:
        await release_quietly(artifact)


def temp_file(
    suffix: str = "",
    dir: Optional[PathLike] = None,
) -> contextlib.AbstractAsyncContextManager[TempArtifact]:
    """Scoped temporary file, removed on exit whatever happened inside.

    Example:
        async with temp_file(".pdf") as artifact:
            await page.render(str(artifact.path), "pdf")
            data = await read_bytes(artifact.path)
    """
    return _scoped(lambda: create_unique_temp_file(suffix, dir))


def temp_dir(
    dir: Optional[PathLike] = None,
) -> contextlib.AbstractAsyncContextManager[TempArtifact]:
    """Scoped temporary directory, removed recursively on exit."""
    return _scoped(lambda: create_unique_temp_dir(dir))


__all__ = [
    "TempArtifact",
    "create_unique_temp_dir",
    "create_unique_temp_file",
    "delete_file",
    "generate_filename",
    "is_dir",
    "mkdir_recursive",
    "read_bytes",
    "release_quietly",
    "temp_dir",
    "temp_file",
    "write_bytes",
    "write_text",
]
