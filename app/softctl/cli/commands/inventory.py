"""Inventory commands.

Shows the applications recorded as installed for an identity.
"""

from typing import Annotated

import typer

from softctl.cli.types import IdentityOption, resolve_identity
from softctl.core.inventory import InventoryStore
from softctl.utils.formatting import (
    console,
    create_application_table,
    format_application_row,
    print_info,
)

app = typer.Typer(
    help="Inspect per-identity application inventories.",
    no_args_is_help=True,
)


@app.command("list")
def list_entries(
    identity: IdentityOption = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the raw inventory record as JSON."),
    ] = False,
) -> None:
    """List the applications recorded for an identity."""
    who = resolve_identity(identity)
    record = InventoryStore().load(who)

    if as_json:
        console.print_json(record.to_json())
        return

    if not record.entries:
        print_info(f"No applications recorded for {who}.")
        return

    table = create_application_table(f"Inventory of {who}")
    for entry in record.entries:
        table.add_row(*format_application_row(entry))
    console.print(table)
    if record.last_scan:
        console.print(f"\n[dim]Last scan: {record.last_scan}[/]")
