"""Filesystem and validation helpers."""

from phantom_pages.utils.fs import (
    TempArtifact,
    create_unique_temp_dir,
    create_unique_temp_file,
    delete_file,
    generate_filename,
    is_dir,
    mkdir_recursive,
    read_bytes,
    release_quietly,
    temp_dir,
    temp_file,
    write_bytes,
    write_text,
)
from phantom_pages.utils.validation import is_between, require_str

__all__ = [
    "TempArtifact",
    "create_unique_temp_dir",
    "create_unique_temp_file",
    "delete_file",
    "generate_filename",
    "is_between",
    "is_dir",
    "mkdir_recursive",
    "read_bytes",
    "release_quietly",
    "require_str",
    "temp_dir",
    "temp_file",
    "write_bytes",
    "write_text",
]
