"""Unit tests for the package store and downloads."""

from pathlib import Path
from unittest.mock import patch

import pytest
from softctl.core.context import OperationContext
from softctl.core.errors import (
    InvalidPackageError,
    OperationCancelledError,
    PackageFileNotFoundError,
)
from softctl.core.store import FilesystemPackageStore, download, remove_workdir


@pytest.fixture
def store(tmp_path: Path) -> FilesystemPackageStore:
    """Store with one zip package."""
    root = tmp_path / "store"
    (root / "packages").mkdir(parents=True)
    (root / "packages" / "Editor-2.1.0.zip").write_bytes(b"PK" + b"\x00" * 98)
    return FilesystemPackageStore(root)


class TestFilesystemPackageStore:
    """Tests for FilesystemPackageStore."""

    def test_exists(self, store: FilesystemPackageStore) -> None:
        """Stored keys exist, others do not."""
        assert store.exists("packages/Editor-2.1.0.zip")
        assert not store.exists("packages/Viewer.zip")

    def test_leading_slash_ignored(self, store: FilesystemPackageStore) -> None:
        """Keys are relative to the root."""
        assert store.exists("/packages/Editor-2.1.0.zip")

    def test_get(self, store: FilesystemPackageStore) -> None:
        """get opens the package for reading."""
        with store.get("packages/Editor-2.1.0.zip") as f:
            assert f.read(2) == b"PK"

    def test_get_missing(self, store: FilesystemPackageStore) -> None:
        """Missing keys raise PackageFileNotFoundError."""
        with pytest.raises(PackageFileNotFoundError):
            store.get("packages/Viewer.zip")

    def test_head_metadata(self, store: FilesystemPackageStore) -> None:
        """Size and content type are reported."""
        meta = store.head_metadata("packages/Editor-2.1.0.zip")

        assert meta.size == 100
        assert meta.content_type == "application/zip"

    def test_head_metadata_missing(self, store: FilesystemPackageStore) -> None:
        """Metadata of a missing key raises PackageFileNotFoundError."""
        with pytest.raises(PackageFileNotFoundError):
            store.head_metadata("packages/Viewer.zip")

    @pytest.mark.parametrize("key", ["../secret.zip", "packages/../../x.dmg", ""])
    def test_rejects_escaping_keys(self, store: FilesystemPackageStore, key: str) -> None:
        """Keys leaving the root are invalid."""
        with pytest.raises(InvalidPackageError):
            store.exists(key)


class TestDownload:
    """Tests for download."""

    def test_copies_package(self, store: FilesystemPackageStore, tmp_path: Path) -> None:
        """The package is copied and progress reported."""
        dest = tmp_path / "dl" / "op" / "Editor-2.1.0.zip"
        seen: list[int] = []

        result = download(
            store, "packages/Editor-2.1.0.zip", dest, OperationContext(60), seen.append
        )

        assert result == dest
        assert dest.read_bytes()[:2] == b"PK"
        assert seen == [100]

    def test_chunked_progress(self, store: FilesystemPackageStore, tmp_path: Path) -> None:
        """Progress is reported once per chunk."""
        seen: list[int] = []

        with patch("softctl.core.store.CHUNK_SIZE", 40):
            download(
                store,
                "packages/Editor-2.1.0.zip",
                tmp_path / "out.zip",
                OperationContext(60),
                seen.append,
            )

        assert seen == [40, 80, 100]

    def test_missing_key(self, store: FilesystemPackageStore, tmp_path: Path) -> None:
        """A missing key fails before creating the destination."""
        dest = tmp_path / "dl" / "Viewer.zip"

        with pytest.raises(PackageFileNotFoundError):
            download(store, "packages/Viewer.zip", dest, OperationContext(60))

        assert not dest.exists()

    def test_cancelled(self, store: FilesystemPackageStore, tmp_path: Path) -> None:
        """A cancelled context stops the copy."""
        ctx = OperationContext(60)
        ctx.cancel()

        with pytest.raises(OperationCancelledError):
            download(store, "packages/Editor-2.1.0.zip", tmp_path / "out.zip", ctx)


class TestRemoveWorkdir:
    """Tests for remove_workdir."""

    def test_removes_tree(self, tmp_path: Path) -> None:
        """The directory and its contents are deleted."""
        workdir = tmp_path / "op"
        (workdir / "nested").mkdir(parents=True)
        (workdir / "nested" / "file").write_text("x")

        remove_workdir(workdir)

        assert not workdir.exists()

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Removing a missing directory is a no-op."""
        remove_workdir(tmp_path / "absent")
