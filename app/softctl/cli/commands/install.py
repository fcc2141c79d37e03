"""Install command implementation.

Downloads a package from the store, deploys its application bundle and
records it in the identity's inventory while streaming progress.
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
from softctl.core.executor import execute_install
from softctl.utils.formatting import print_error


def install(
    key: Annotated[
        str,
        typer.Argument(help="Store key of the package, e.g. 'Editor-2.1.0-arm64.dmg'."),
    ],
    identity: IdentityOption = None,
    stream: StreamOption = False,
    config_path: ConfigOption = None,
) -> None:
    """Install an application from the package store.

    Examples:
        softctl install Editor-2.1.0-arm64.dmg
        softctl install tools/Viewer.zip --identity alice
        softctl install Editor.pkg --stream       # Raw stream frames
    """
    config = get_config(config_path)
    try:
        terminal = execute_install(key, resolve_identity(identity), get_sink(stream), config)
    except InvalidPackageError as e:
        print_error(f"{e.message}: {e.details}" if e.details else e.message)
        raise typer.Exit(code=2) from e
    raise typer.Exit(code=exit_code(terminal))
