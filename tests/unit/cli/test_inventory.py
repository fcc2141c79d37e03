"""Unit tests for inventory commands."""

from softctl.cli.main import app
from softctl.core.inventory import InventoryReconciler, InventoryStore
from softctl.models.inventory import InventoryEntry
from typer.testing import CliRunner

runner = CliRunner()


def _record(identity: str, *names: str) -> None:
    reconciler = InventoryReconciler(InventoryStore())
    for name in names:
        reconciler.record_install(
            identity, InventoryEntry(name=name, version="1.0.0", path=f"/Applications/{name}.app")
        )


class TestInventoryList:
    """Tests for softctl inventory list."""

    def test_lists_entries(self) -> None:
        """Recorded applications are shown in a table."""
        _record("alice", "Editor", "Viewer")

        result = runner.invoke(app, ["inventory", "list", "-i", "alice"])

        assert result.exit_code == 0
        assert "Inventory of alice" in result.stdout
        assert "Editor" in result.stdout
        assert "Viewer" in result.stdout

    def test_empty(self) -> None:
        """Identities without entries get a notice."""
        result = runner.invoke(app, ["inventory", "list", "-i", "bob"])

        assert result.exit_code == 0
        assert "No applications recorded for bob." in result.stdout

    def test_json(self) -> None:
        """--json prints the raw record."""
        _record("alice", "Editor")

        result = runner.invoke(app, ["inventory", "list", "-i", "alice", "--json"])

        assert result.exit_code == 0
        assert '"identity": "alice"' in result.stdout
        assert '"name": "Editor"' in result.stdout

    def test_identities_are_separate(self) -> None:
        """One identity's entries are not shown for another."""
        _record("alice", "Editor")

        result = runner.invoke(app, ["inventory", "list", "-i", "bob"])

        assert "Editor" not in result.stdout
