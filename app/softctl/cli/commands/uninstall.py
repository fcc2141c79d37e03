"""Uninstall command implementation.

Removes an installed application with its preferences, support data and
caches, then drops it from the identity's inventory.
"""

from typing import Annotated

import typer

from softctl.cli.types import (
    ConfigOption,
    IdentityOption,
    StreamOption,
    exit_code,
    get_config,
    get_sink,
    resolve_identity,
)
from softctl.core.errors import InvalidPackageError
from softctl.core.executor import execute_uninstall
from softctl.utils.formatting import print_error


def uninstall(
    key: Annotated[
        str,
        typer.Argument(help="Package key or application name, e.g. 'Editor' or 'chrome'."),
    ],
    identity: IdentityOption = None,
    elevated: Annotated[
        bool,
        typer.Option(
            "--elevated/--standard",
            help="Whether system applications may be removed.",
        ),
    ] = True,
    stream: StreamOption = False,
    config_path: ConfigOption = None,
) -> None:
    """Uninstall an application and clean up its data.

    The local user acts with their own permissions, so --elevated is the
    default; --standard refuses to touch system applications.

    Examples:
        softctl uninstall Editor
        softctl uninstall chrome --standard
    """
    config = get_config(config_path)
    try:
        terminal = execute_uninstall(
            key,
            resolve_identity(identity),
            get_sink(stream),
            config,
            elevated=elevated,
        )
    except InvalidPackageError as e:
        print_error(f"{e.message}: {e.details}" if e.details else e.message)
        raise typer.Exit(code=2) from e
    raise typer.Exit(code=exit_code(terminal))
