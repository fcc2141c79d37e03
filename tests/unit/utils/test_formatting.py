"""Unit tests for Rich formatting helpers."""

import pytest
from rich.table import Table
from softctl.core.errors import ErrorKind
from softctl.models.application import ScannedApplication
from softctl.models.inventory import InventoryEntry
from softctl.models.progress import Completed, Error, Progress
from softctl.utils.formatting import (
    create_application_table,
    format_application_row,
    format_event,
)


class TestApplicationTable:
    """Tests for application table helpers."""

    def test_table_columns(self) -> None:
        """The table has icon, name, version and path columns."""
        table = create_application_table("Apps")

        assert isinstance(table, Table)
        assert table.title == "Apps"
        assert [c.header for c in table.columns] == ["", "Application", "Version", "Path"]

    def test_system_app_row(self) -> None:
        """System applications get a filled marker."""
        app = ScannedApplication(
            name="Safari", version="17.0", path="/Applications/Safari.app", is_system_app=True
        )

        icon, name, version, path = format_application_row(app)

        assert "●" in icon
        assert "Safari" in name
        assert "17.0" in version
        assert "/Applications/Safari.app" in path

    def test_inventory_entry_row(self) -> None:
        """Inventory entries render like scanned applications."""
        entry = InventoryEntry(name="Editor", version="2.1.0", path="/Users/a/Applications/E.app")

        icon, name, _, _ = format_application_row(entry)

        assert "○" in icon
        assert "Editor" in name


class TestFormatEvent:
    """Tests for format_event."""

    def test_progress(self) -> None:
        """Progress lines show the percentage and details."""
        line = format_event(Progress(40, "Package downloaded...", "Editor.dmg"))

        assert "40%" in line
        assert "Package downloaded..." in line
        assert "Editor.dmg" in line

    def test_completed(self) -> None:
        """Completed lines show 100%."""
        assert "100%" in format_event(Completed("Editor installed successfully"))

    def test_error(self) -> None:
        """Error lines show the kind."""
        line = format_event(Error("Operation timed out.", ErrorKind.TIMEOUT))

        assert "timeout" in line
        assert "Operation timed out." in line

    def test_unknown_event(self) -> None:
        """Anything else is a programming error."""
        with pytest.raises(TypeError, match="Unknown event type"):
            format_event("progress")  # type: ignore[arg-type]
