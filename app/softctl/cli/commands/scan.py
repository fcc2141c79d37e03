"""Scan command implementation.

Lists the application bundles installed on this machine and optionally
replaces an identity's inventory with the result.
"""

import json
from dataclasses import asdict
from enum import Enum
from typing import Annotated

import typer

from softctl.cli.types import ConfigOption, IdentityOption, get_config, resolve_identity
from softctl.core.inventory import InventoryReconciler, InventoryStore
from softctl.models.application import ScannedApplication
from softctl.scanners.bundle import BundleScanner
from softctl.utils.formatting import (
    console,
    create_application_table,
    format_application_row,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="Scan installed application bundles.",
    invoke_without_command=True,
)


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


@app.callback(invoke_without_command=True)
def scan_applications(
    ctx: typer.Context,
    count_only: Annotated[
        bool,
        typer.Option(
            "--count",
            "-c",
            help="Only show application counts.",
        ),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
    refresh: Annotated[
        bool,
        typer.Option(
            "--refresh",
            "-r",
            help="Replace the identity's inventory with the scan result.",
        ),
    ] = False,
    identity: IdentityOption = None,
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            "-n",
            help="Show only the application known by this name or alias.",
        ),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-l",
            help="Limit number of applications to display.",
        ),
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """Scan application directories and list installed bundles.

    Examples:
        softctl scan                       # Table of all applications
        softctl scan --count               # Counts only
        softctl scan --format json         # JSON output
        softctl scan --refresh -i alice    # Refresh alice's inventory
    """
    # Skip if a subcommand is being invoked
    if ctx.invoked_subcommand is not None:
        return

    config = get_config(config_path)
    scanner = BundleScanner.from_config(config)

    if not scanner.is_available():
        print_error("None of the application directories exist on this system.")
        raise typer.Exit(code=1)

    index = scanner.index()
    applications: list[ScannedApplication] = index.applications
    applications.sort(key=lambda a: a.name.casefold())

    if refresh:
        who = resolve_identity(identity)
        record = InventoryReconciler(InventoryStore()).refresh(who, applications)
        print_success(f"Inventory of {who} refreshed: {len(record.entries)} applications")

    if count_only:
        system_count = sum(1 for a in applications if a.is_system_app)
        print_info(f"Total applications: {len(applications)}")
        console.print(f"  [system_app]System:[/] {system_count}")
        console.print(f"  [user_app]Other:[/] {len(applications) - system_count}")
        return

    if name is not None:
        found = index.lookup(name)
        if found is None:
            print_error(f"No installed application matches {name!r}.")
            raise typer.Exit(code=1)
        applications = [found]

    display = applications[:limit] if limit else applications

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([asdict(a) for a in display]))
        return

    table = create_application_table()
    for application in display:
        table.add_row(*format_application_row(application))
    console.print(table)

    summary = f"Showing {len(display)} of {len(applications)} applications"
    if limit and len(display) < len(applications):
        summary += f" (limited to {limit})"
    console.print(f"\n[dim]{summary}[/]")
