"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from softctl.core.theme import get_theme
from softctl.models.progress import Completed, Error, Progress

if TYPE_CHECKING:
    from softctl.models.application import ScannedApplication
    from softctl.models.inventory import InventoryEntry
    from softctl.models.progress import ProgressEvent


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, otherwise let Rich decide."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_application_table(title: str = "Installed Applications") -> Table:
    """Create a pre-configured table for displaying applications.

    Args:
        title: Table title.

    Returns:
        Rich Table with icon, name, version and path columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Application", no_wrap=True)
    table.add_column("Version", style="muted")
    table.add_column("Path", style="info", overflow="ellipsis")
    return table


def format_application_row(
    app: ScannedApplication | InventoryEntry,
) -> tuple[str, str, str, str]:
    """Format an application as a table row.

    System applications get a filled circle, user applications an empty one.

    Returns:
        Tuple of (icon, name, version, path) with Rich markup.
    """
    if app.is_system_app:
        icon = "[system_app]●[/]"
        name = f"[system_app]{app.name}[/]"
    else:
        icon = "[user_app]○[/]"
        name = f"[user_app]{app.name}[/]"
    return (icon, name, f"[muted]{app.version}[/]", f"[info]{app.path}[/]")


def format_event(event: ProgressEvent) -> str:
    """Render a progress event as one line of Rich markup."""
    if isinstance(event, Progress):
        line = f"[progress]{event.percent:>3}%[/] {event.message}"
        if event.details:
            line += f" [muted]({event.details})[/]"
        return line
    if isinstance(event, Completed):
        line = f"[success]100%[/] [success]{event.message}[/]"
        if event.details:
            line += f" [muted]({event.details})[/]"
        return line
    if isinstance(event, Error):
        line = f"[error]Error ({event.kind.value}):[/] {event.message}"
        if event.details:
            line += f" [muted]({event.details})[/]"
        return line
    msg = f"Unknown event type: {type(event).__name__}"
    raise TypeError(msg)


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
