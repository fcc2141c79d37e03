"""Package store collaborator.

The orchestrator only needs to test for, inspect and stream a package by
key. PackageStore is the interface; FilesystemPackageStore serves keys
from a directory tree.
"""

import logging
import mimetypes
import shutil
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from softctl.core.context import OperationContext
from softctl.core.errors import InvalidPackageError, PackageFileNotFoundError

logger = logging.getLogger(__name__)

# Bytes copied between cancellation checks
CHUNK_SIZE = 1024 * 1024

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class PackageMetadata:
    """Metadata of a stored package.

    Attributes:
        size: Size in bytes.
        content_type: MIME type of the package.
    """

    size: int
    content_type: str


class PackageStore(ABC):
    """Key/value blob store holding packages."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check whether a package exists under the key."""

    @abstractmethod
    def get(self, key: str) -> BinaryIO:
        """Open the package for reading.

        Raises:
            PackageFileNotFoundError: If no package exists under the key.
        """

    @abstractmethod
    def head_metadata(self, key: str) -> PackageMetadata:
        """Return size and content type of the package.

        Raises:
            PackageFileNotFoundError: If no package exists under the key.
        """


class FilesystemPackageStore(PackageStore):
    """Package store backed by a local directory.

    Keys are relative POSIX paths below the root. Keys escaping the root
    are rejected.

    Attributes:
        root: Directory holding the packages.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _resolve(self, key: str) -> Path:
        relative = PurePosixPath(key.lstrip("/"))
        if not relative.parts or ".." in relative.parts:
            msg = f"Invalid package key: {key!r}"
            raise InvalidPackageError(msg)
        return self.root.joinpath(*relative.parts)

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    def get(self, key: str) -> BinaryIO:
        path = self._resolve(key)
        try:
            return open(path, "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            msg = f"Package not found: {key}"
            raise PackageFileNotFoundError(msg, details=str(path)) from e

    def head_metadata(self, key: str) -> PackageMetadata:
        path = self._resolve(key)
        try:
            size = path.stat().st_size
        except FileNotFoundError as e:
            msg = f"Package not found: {key}"
            raise PackageFileNotFoundError(msg, details=str(path)) from e
        content_type, _ = mimetypes.guess_type(path.name)
        return PackageMetadata(size=size, content_type=content_type or _DEFAULT_CONTENT_TYPE)


def download(
    store: PackageStore,
    key: str,
    dest: Path,
    ctx: OperationContext,
    on_chunk: Callable[[int], None] | None = None,
) -> Path:
    """Copy a package from the store to a local file.

    Args:
        store: Package store to read from.
        key: Package key.
        dest: Destination file path; parent directories are created.
        ctx: Operation context, checked between chunks.
        on_chunk: Called with the total number of bytes copied so far.

    Returns:
        The destination path.

    Raises:
        PackageFileNotFoundError: If the key does not exist.
        OperationCancelledError: If the operation is cancelled mid-copy.
        OperationTimeoutError: If the deadline expires mid-copy.
    """
    if not store.exists(key):
        msg = f"Package not found: {key}"
        raise PackageFileNotFoundError(msg)

    dest.parent.mkdir(parents=True, exist_ok=True)
    copied = 0
    with store.get(key) as source, open(dest, "wb") as target:
        while True:
            ctx.check()
            chunk = source.read(CHUNK_SIZE)
            if not chunk:
                break
            target.write(chunk)
            copied += len(chunk)
            if on_chunk is not None:
                on_chunk(copied)

    logger.info("Downloaded %s (%d bytes) to %s", key, copied, dest)
    return dest


def remove_workdir(path: Path) -> None:
    """Delete an operation's scratch directory, logging failures."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Failed to remove work directory %s: %s", path, e)
