"""Inventory persistence and reconciliation.

InventoryStore keeps one JSON document per identity under the state
directory and serializes read-modify-write cycles per identity.
InventoryReconciler applies the results of installs, uninstalls and
scans to those records.
"""

import json
import logging
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from urllib.parse import quote

from softctl.core.paths import get_inventory_dir
from softctl.models.application import ScannedApplication
from softctl.models.inventory import InventoryEntry, InventoryRecord, normalize_entry_name

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_identity_locks: dict[tuple[str, str], threading.RLock] = {}


def _identity_lock(directory: Path, identity: str) -> threading.RLock:
    key = (str(directory), identity)
    with _registry_lock:
        lock = _identity_locks.get(key)
        if lock is None:
            lock = _identity_locks[key] = threading.RLock()
        return lock


class InventoryStore:
    """Per-identity inventory records stored as JSON files.

    Storage location: ~/.local/state/softctl/inventory/<identity>.json

    Attributes:
        inventory_dir: Directory holding one file per identity.
    """

    def __init__(self, inventory_dir: Path | None = None) -> None:
        """Initialize InventoryStore.

        Args:
            inventory_dir: Optional override for the inventory directory.
        """
        self.inventory_dir = inventory_dir if inventory_dir is not None else get_inventory_dir()

    def record_path(self, identity: str) -> Path:
        """Path of an identity's record file."""
        return self.inventory_dir / f"{quote(identity, safe='')}.json"

    def load(self, identity: str) -> InventoryRecord:
        """Load an identity's record.

        A missing or corrupt file yields an empty record.
        """
        path = self.record_path(identity)
        if not path.exists():
            return InventoryRecord(identity=identity)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            record = InventoryRecord.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring corrupt inventory record %s: %s", path, e)
            return InventoryRecord(identity=identity)
        if record.identity != identity:
            return replace(record, identity=identity)
        return record

    def save(self, record: InventoryRecord) -> None:
        """Write a record atomically.

        Raises:
            OSError: If the file cannot be written.
        """
        path = self.record_path(record.identity)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                f.write(record.to_json())
                f.write("\n")
            os.replace(tmp_path, path)
        except OSError:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise

    def update(
        self,
        identity: str,
        change: Callable[[InventoryRecord], InventoryRecord],
    ) -> InventoryRecord:
        """Apply a change to a record under the identity's lock.

        Args:
            identity: Identity owning the record.
            change: Function mapping the current record to the new one.

        Returns:
            The saved record.
        """
        with _identity_lock(self.inventory_dir, identity):
            record = change(self.load(identity))
            self.save(record)
            return record


def _conflicts(existing: InventoryEntry, new: InventoryEntry) -> bool:
    """Whether an existing entry describes the same application as a new one."""
    have = existing.key
    want = new.key
    return (
        have == want
        or want in have
        or have in want
        or existing.path.casefold() == new.path.casefold()
    )


class InventoryReconciler:
    """Keeps inventory records in line with verified machine state."""

    def __init__(self, store: InventoryStore) -> None:
        self.store = store

    def record_install(self, identity: str, entry: InventoryEntry) -> InventoryRecord:
        """Add a verified installation, replacing conflicting entries.

        Entries whose name contains or is contained in the new name, or that
        share its path, are dropped first so a reinstall never duplicates.

        Args:
            identity: Identity that requested the install.
            entry: Entry for the verified bundle.

        Returns:
            The updated record.
        """

        def apply(record: InventoryRecord) -> InventoryRecord:
            kept = tuple(e for e in record.entries if not _conflicts(e, entry))
            dropped = len(record.entries) - len(kept)
            if dropped:
                logger.debug("Replacing %d inventory entr(ies) for %s", dropped, entry.name)
            return replace(record, entries=(*kept, entry))

        record = self.store.update(identity, apply)
        logger.info("Recorded %s at %s for %s", entry.name, entry.path, identity)
        return record

    def record_uninstall(self, identity: str, app_name: str) -> list[InventoryEntry]:
        """Remove entries whose name contains the uninstalled application's name.

        Args:
            identity: Identity that requested the uninstall.
            app_name: Resolved name of the removed application.

        Returns:
            The removed entries.
        """
        needle = normalize_entry_name(app_name)
        removed: list[InventoryEntry] = []

        def apply(record: InventoryRecord) -> InventoryRecord:
            kept: list[InventoryEntry] = []
            for entry in record.entries:
                if needle and needle in entry.key:
                    removed.append(entry)
                else:
                    kept.append(entry)
            return replace(record, entries=tuple(kept))

        self.store.update(identity, apply)
        if removed:
            logger.info(
                "Removed %s from inventory of %s",
                ", ".join(e.name for e in removed),
                identity,
            )
        return removed

    def forget_paths(self, identity: str, paths: Iterable[Path]) -> list[InventoryEntry]:
        """Remove entries installed at paths that no longer exist on disk.

        Args:
            identity: Identity whose record is updated.
            paths: Bundle paths removed from the machine.

        Returns:
            The removed entries.
        """
        gone = {str(p).casefold() for p in paths if not (p.exists() or p.is_symlink())}
        removed: list[InventoryEntry] = []
        if not gone:
            return removed

        def apply(record: InventoryRecord) -> InventoryRecord:
            kept: list[InventoryEntry] = []
            for entry in record.entries:
                if entry.path.casefold() in gone:
                    removed.append(entry)
                else:
                    kept.append(entry)
            return replace(record, entries=tuple(kept))

        self.store.update(identity, apply)
        if removed:
            logger.info(
                "Dropped %s from inventory of %s: bundle removed",
                ", ".join(e.name for e in removed),
                identity,
            )
        return removed

    def refresh(
        self,
        identity: str,
        applications: Iterable[ScannedApplication],
    ) -> InventoryRecord:
        """Replace an identity's entries with a fresh scan.

        Install dates of applications already recorded are preserved.

        Args:
            identity: Identity whose record is refreshed.
            applications: Applications verified present by the scanner.

        Returns:
            The updated record.
        """
        scanned = list(applications)
        now = datetime.now(UTC).isoformat()

        def apply(record: InventoryRecord) -> InventoryRecord:
            previous = {entry.key: entry for entry in record.entries}
            entries: dict[str, InventoryEntry] = {}
            for app in scanned:
                key = normalize_entry_name(app.name)
                if key in entries:
                    continue
                prior = previous.get(key)
                entries[key] = InventoryEntry(
                    name=app.name,
                    version=app.version,
                    path=app.path,
                    bundle_id=app.bundle_id,
                    is_system_app=app.is_system_app,
                    install_date=prior.install_date if prior is not None else now,
                    last_checked=now,
                )
            return InventoryRecord(
                identity=identity,
                entries=tuple(entries.values()),
                last_scan=now,
            )

        record = self.store.update(identity, apply)
        logger.info("Refreshed inventory of %s: %d application(s)", identity, len(record.entries))
        return record
