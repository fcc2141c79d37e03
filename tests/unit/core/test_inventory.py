"""Unit tests for inventory persistence and reconciliation."""

import json
from pathlib import Path

from softctl.core.inventory import InventoryReconciler, InventoryStore
from softctl.models.application import ScannedApplication
from softctl.models.inventory import InventoryEntry, InventoryRecord

_DATE = "2026-01-01T00:00:00+00:00"


def _entry(name: str, path: str | None = None, install_date: str = _DATE) -> InventoryEntry:
    return InventoryEntry(
        name=name,
        version="1.0.0",
        path=path or f"/Applications/{name}.app",
        install_date=install_date,
        last_checked=install_date,
    )


class TestInventoryStore:
    """Tests for InventoryStore."""

    def test_load_missing(self, inventory: InventoryStore) -> None:
        """A missing file yields an empty record."""
        record = inventory.load("alice")

        assert record.identity == "alice"
        assert record.entries == ()

    def test_load_corrupt(self, inventory: InventoryStore) -> None:
        """A corrupt file yields an empty record."""
        path = inventory.record_path("alice")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        assert inventory.load("alice").entries == ()

    def test_save_and_load(self, inventory: InventoryStore) -> None:
        """Saved records load back unchanged."""
        record = InventoryRecord(identity="alice", entries=(_entry("Editor"),))

        inventory.save(record)

        assert inventory.load("alice") == record

    def test_identity_is_quoted(self, inventory: InventoryStore) -> None:
        """Identities never escape the inventory directory."""
        path = inventory.record_path("../bob@example.com")

        assert path.parent == inventory.inventory_dir
        assert "/" not in path.name

    def test_identity_follows_file_name(self, inventory: InventoryStore) -> None:
        """The record identity is taken from the requested identity."""
        path = inventory.record_path("alice")
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"identity": "mallory", "entries": []}), encoding="utf-8")

        assert inventory.load("alice").identity == "alice"

    def test_update(self, inventory: InventoryStore) -> None:
        """update persists the changed record."""
        inventory.update(
            "alice", lambda r: InventoryRecord(identity=r.identity, entries=(_entry("Editor"),))
        )

        assert inventory.load("alice").find("editor") is not None

    def test_no_temp_files_left(self, inventory: InventoryStore) -> None:
        """Atomic writes leave only the record file."""
        inventory.save(InventoryRecord(identity="alice"))

        assert [p.name for p in inventory.inventory_dir.iterdir()] == ["alice.json"]


class TestInventoryReconciler:
    """Tests for InventoryReconciler."""

    def test_record_install(self, inventory: InventoryStore) -> None:
        """An install adds one entry."""
        record = InventoryReconciler(inventory).record_install("alice", _entry("Editor"))

        assert [e.name for e in record.entries] == ["Editor"]

    def test_reinstall_is_idempotent(self, inventory: InventoryStore) -> None:
        """Installing twice keeps a single entry."""
        reconciler = InventoryReconciler(inventory)
        reconciler.record_install("alice", _entry("Editor"))
        reconciler.record_install("alice", _entry("editor"))

        assert len(inventory.load("alice").entries) == 1

    def test_replaces_contained_names(self, inventory: InventoryStore) -> None:
        """Entries whose names contain each other are replaced."""
        reconciler = InventoryReconciler(inventory)
        reconciler.record_install("alice", _entry("Editor Beta"))
        record = reconciler.record_install("alice", _entry("Editor"))

        assert [e.name for e in record.entries] == ["Editor"]

    def test_replaces_same_path(self, inventory: InventoryStore) -> None:
        """An entry at the same path is replaced regardless of name."""
        reconciler = InventoryReconciler(inventory)
        reconciler.record_install("alice", _entry("Old Name", path="/Applications/Tool.app"))
        record = reconciler.record_install("alice", _entry("Tool", path="/applications/tool.app"))

        assert [e.name for e in record.entries] == ["Tool"]

    def test_keeps_unrelated(self, inventory: InventoryStore) -> None:
        """Unrelated entries survive an install."""
        reconciler = InventoryReconciler(inventory)
        reconciler.record_install("alice", _entry("Viewer"))
        record = reconciler.record_install("alice", _entry("Editor"))

        assert [e.name for e in record.entries] == ["Viewer", "Editor"]

    def test_identities_are_separate(self, inventory: InventoryStore) -> None:
        """Each identity has its own record."""
        reconciler = InventoryReconciler(inventory)
        reconciler.record_install("alice", _entry("Editor"))

        assert inventory.load("bob").entries == ()

    def test_record_uninstall(self, inventory: InventoryStore) -> None:
        """Entries containing the removed name are dropped."""
        reconciler = InventoryReconciler(inventory)
        reconciler.record_install("alice", _entry("Viewer"))
        reconciler.record_install("alice", _entry("Editor Pro"))

        removed = reconciler.record_uninstall("alice", "editor")

        assert [e.name for e in removed] == ["Editor Pro"]
        assert [e.name for e in inventory.load("alice").entries] == ["Viewer"]

    def test_record_uninstall_nothing(self, inventory: InventoryStore) -> None:
        """Uninstalling an unrecorded application removes nothing."""
        reconciler = InventoryReconciler(inventory)
        reconciler.record_install("alice", _entry("Viewer"))

        assert reconciler.record_uninstall("alice", "Editor") == []
        assert len(inventory.load("alice").entries) == 1

    def test_refresh_preserves_install_date(self, inventory: InventoryStore) -> None:
        """Known applications keep their install date."""
        reconciler = InventoryReconciler(inventory)
        first = _entry("Editor", install_date="2020-05-05T00:00:00+00:00")
        reconciler.record_install("alice", first)
        reconciler.record_install("alice", _entry("Gone"))
        scanned = [
            ScannedApplication(name="Editor", version="2.0", path="/Applications/Editor.app"),
            ScannedApplication(name="Viewer", version="1.0", path="/Applications/Viewer.app"),
        ]

        record = reconciler.refresh("alice", scanned)

        assert [e.name for e in record.entries] == ["Editor", "Viewer"]
        editor = record.find("Editor")
        assert editor is not None
        assert editor.install_date == "2020-05-05T00:00:00+00:00"
        assert editor.version == "2.0"
        assert record.last_scan is not None

    def test_refresh_collapses_duplicates(self, inventory: InventoryStore, tmp_path: Path) -> None:
        """Applications with the same normalized name are recorded once."""
        scanned = [
            ScannedApplication(name="Editor", version="2.0", path="/Applications/Editor.app"),
            ScannedApplication(name="editor", version="1.0", path=str(tmp_path / "editor.app")),
        ]

        record = InventoryReconciler(inventory).refresh("alice", scanned)

        assert len(record.entries) == 1
        assert record.entries[0].version == "2.0"

    def test_forget_paths(self, inventory: InventoryStore, tmp_path: Path) -> None:
        """Entries whose bundle is gone from disk are dropped."""
        present = tmp_path / "Viewer.app"
        present.mkdir()
        inventory.save(
            InventoryRecord(
                identity="alice",
                entries=(
                    _entry("Editor", path=str(tmp_path / "Editor.app")),
                    _entry("Editor Pro", path=str(tmp_path / "Pro.app")),
                    _entry("Viewer", path=str(present)),
                ),
            )
        )

        reconciler = InventoryReconciler(inventory)
        removed = reconciler.forget_paths("alice", [tmp_path / "Editor.app", present])

        assert [e.name for e in removed] == ["Editor"]
        assert [e.name for e in inventory.load("alice").entries] == ["Editor Pro", "Viewer"]
