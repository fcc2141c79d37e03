"""Package reference model.

A PackageReference identifies a remotely stored package by its store
key and derives the names used for display and for OS-level matching.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

# Archive formats the installer knows how to deploy
SUPPORTED_EXTENSIONS: tuple[str, ...] = (".dmg", ".pkg", ".zip")

# Leading run of characters before the first dash or digit
_BASE_NAME_PATTERN = re.compile(r"^([^-\d]+)")


@dataclass(frozen=True, slots=True)
class PackageReference:
    """Reference to a package in the package store.

    Attributes:
        key: Opaque store key (e.g., 'packages/Editor-2.1.0-arm64.dmg').
        display_name: Key basename without the archive extension.
        search_name: Display name with trailing version/architecture
            tokens stripped, used for process and bundle matching.
        extension: Lower-cased archive extension including the dot.
    """

    key: str
    display_name: str
    search_name: str
    extension: str

    def __post_init__(self) -> None:
        """Validate reference data after initialization."""
        if not self.key:
            msg = "Package key cannot be empty"
            raise ValueError(msg)
        if not self.search_name:
            msg = "Search name cannot be empty"
            raise ValueError(msg)
        if not self.display_name.startswith(self.search_name):
            msg = f"Search name {self.search_name!r} is not a prefix of {self.display_name!r}"
            raise ValueError(msg)

    @classmethod
    def from_key(cls, key: str) -> "PackageReference":
        """Derive a reference from a store key.

        Args:
            key: Store key of the package.

        Returns:
            PackageReference with derived display and search names.

        Raises:
            ValueError: If the key is empty or has no usable basename.
        """
        key = key.strip()
        if not key:
            msg = "Package key cannot be empty"
            raise ValueError(msg)

        basename = PurePosixPath(key).name
        extension = PurePosixPath(basename).suffix.lower()
        display = basename[: -len(extension)] if extension in SUPPORTED_EXTENSIONS else basename
        display = display.strip()
        if not display:
            msg = f"Package key has no usable name: {key!r}"
            raise ValueError(msg)

        return cls(
            key=key,
            display_name=display,
            search_name=derive_search_name(display),
            extension=extension,
        )

    @property
    def is_supported(self) -> bool:
        """Check if the archive format can be deployed."""
        return self.extension in SUPPORTED_EXTENSIONS


def derive_search_name(display_name: str) -> str:
    """Strip trailing version and architecture tokens from a display name.

    'Editor-2.1.0-arm64' becomes 'Editor'; 'System Check-1.0.0' becomes
    'System Check'. Names without such a prefix are returned unchanged.

    Args:
        display_name: Name derived from the package key.

    Returns:
        Non-empty prefix of the display name.
    """
    if "-" not in display_name:
        return display_name
    match = _BASE_NAME_PATTERN.match(display_name)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return display_name
