"""Inventory record models.

One InventoryRecord is kept per user identity. It holds an ordered list
of InventoryEntry items, at most one per normalized application name.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def normalize_entry_name(name: str) -> str:
    """Normalize an application name for inventory identity.

    Case-insensitive, with runs of whitespace collapsed to one space.
    """
    return _WHITESPACE.sub(" ", name).strip().casefold()


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True, slots=True)
class InventoryEntry:
    """An application recorded as installed for an identity.

    Attributes:
        name: Application name (bundle name without '.app').
        version: Installed version string.
        path: Installation path of the bundle.
        bundle_id: Bundle identifier, if known.
        is_system_app: Whether the application is system-provided.
        install_date: ISO 8601 timestamp of the install.
        last_checked: ISO 8601 timestamp of the last presence check.
    """

    name: str
    version: str
    path: str
    bundle_id: str | None = None
    is_system_app: bool = False
    install_date: str = field(default_factory=_now)
    last_checked: str = field(default_factory=_now)

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.name.strip():
            msg = "Entry name cannot be empty"
            raise ValueError(msg)
        if not self.path:
            msg = "Entry path cannot be empty"
            raise ValueError(msg)

    @property
    def key(self) -> str:
        """Normalized identity of this entry."""
        return normalize_entry_name(self.name)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "path": self.path,
            "is_system_app": self.is_system_app,
            "install_date": self.install_date,
            "last_checked": self.last_checked,
        }
        if self.bundle_id is not None:
            result["bundle_id"] = self.bundle_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InventoryEntry":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If field data is invalid.
        """
        return cls(
            name=data["name"],
            version=data.get("version", "1.0.0"),
            path=data["path"],
            bundle_id=data.get("bundle_id"),
            is_system_app=data.get("is_system_app", False),
            install_date=data.get("install_date") or _now(),
            last_checked=data.get("last_checked") or _now(),
        )


@dataclass(frozen=True, slots=True)
class InventoryRecord:
    """All inventory entries for one identity.

    Attributes:
        identity: User identity owning the record.
        entries: Ordered entries, unique by normalized name.
        last_scan: ISO 8601 timestamp of the last full refresh, if any.
    """

    identity: str
    entries: tuple[InventoryEntry, ...] = ()
    last_scan: str | None = None

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.identity:
            msg = "Identity cannot be empty"
            raise ValueError(msg)
        keys = [entry.key for entry in self.entries]
        if len(keys) != len(set(keys)):
            msg = f"Duplicate application entries for identity {self.identity!r}"
            raise ValueError(msg)

    def find(self, name: str) -> InventoryEntry | None:
        """Find the entry with the given normalized name."""
        key = normalize_entry_name(name)
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "identity": self.identity,
            "last_scan": self.last_scan,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InventoryRecord":
        """Deserialize from dictionary.

        Duplicate entries in stored data are collapsed, keeping the last.
        """
        by_key: dict[str, InventoryEntry] = {}
        for item in data.get("entries", []):
            entry = InventoryEntry.from_dict(item)
            by_key.pop(entry.key, None)
            by_key[entry.key] = entry
        return cls(
            identity=data["identity"],
            entries=tuple(by_key.values()),
            last_scan=data.get("last_scan"),
        )

    def to_json(self) -> str:
        """Serialize to an indented JSON document."""
        return json.dumps(self.to_dict(), indent=2)
