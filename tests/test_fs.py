"""
Tests for filesystem helpers.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from phantom_pages.utils import (
    create_unique_temp_dir,
    create_unique_temp_file,
    generate_filename,
    is_between,
    read_bytes,
    temp_dir,
    temp_file,
    write_bytes,
)


class TestGenerateFilename:
    """Tests for generate_filename."""

    def test_unique_and_safe(self):
        """Test names differ and contain no separators."""
        names = {generate_filename() for _ in range(50)}
        assert len(names) == 50
        assert all("/" not in n and "\\" not in n for n in names)


class TestTempArtifact:
    """Tests for TempArtifact release."""

    def test_file_release_is_exactly_once(self, tmp_path: Path):
        """Test repeated release is harmless."""
        artifact = create_unique_temp_file(".pdf", tmp_path)
        assert artifact.path.exists()
        assert artifact.path.suffix == ".pdf"

        artifact.release()
        artifact.release()

        assert artifact.released is True
        assert not artifact.path.exists()

    def test_file_already_gone(self, tmp_path: Path):
        """Test releasing a file someone else deleted."""
        artifact = create_unique_temp_file(dir=tmp_path)
        artifact.path.unlink()
        artifact.release()

    def test_dir_release_removes_tree(self, tmp_path: Path):
        """Test directories are removed recursively."""
        artifact = create_unique_temp_dir(tmp_path)
        (artifact.path / "nested").mkdir()
        (artifact.path / "nested" / "f.txt").write_text("x")

        artifact.release()
        assert not artifact.path.exists()


class TestScopedTemps:
    """Tests for temp_file and temp_dir."""

    @pytest.mark.asyncio
    async def test_temp_file_removed_on_success(self, tmp_path: Path):
        """Test normal exit."""
        async with temp_file(".bin", tmp_path) as artifact:
            await write_bytes(artifact.path, b"data")
            assert await read_bytes(artifact.path) == b"data"

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_temp_file_removed_on_error(self, tmp_path: Path):
        """Test exit through an exception."""
        with pytest.raises(ValueError):
            async with temp_file(dir=tmp_path):
                raise ValueError("render failed")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_release_failure_keeps_original_error(self, tmp_path: Path):
        """Test a failing cleanup never replaces the error."""
        with patch(
            "phantom_pages.utils.fs.TempArtifact.release",
            side_effect=PermissionError("locked"),
        ):
            with pytest.raises(ValueError, match="render failed"):
                async with temp_file(dir=tmp_path):
                    raise ValueError("render failed")

    @pytest.mark.asyncio
    async def test_temp_dir_removed(self, tmp_path: Path):
        """Test temp_dir cleans up its contents."""
        async with temp_dir(tmp_path) as artifact:
            (artifact.path / "page.html").write_text("<p>")

        assert list(tmp_path.iterdir()) == []


class TestIsBetween:
    """Tests for is_between."""

    @pytest.mark.parametrize("value", [0, 50, 100, "0", "100", 99.5])
    def test_in_range(self, value):
        """Test accepted values."""
        assert is_between(-1, 101, value) is True

    @pytest.mark.parametrize(
        "value", [-1, 101, "abc", "5.5", "Infinity", float("nan"), float("inf"), True, None]
    )
    def test_out_of_range(self, value):
        """Test rejected values."""
        assert is_between(-1, 101, value) is False
