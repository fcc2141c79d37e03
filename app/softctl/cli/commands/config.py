"""Configuration commands.

Shows the effective configuration and writes a default config file.
"""

from typing import Annotated

import typer

from softctl.cli.types import ConfigOption, get_config
from softctl.core.config import ConfigError, SoftctlConfig, save_config
from softctl.core.paths import get_config_path
from softctl.utils.formatting import console, print_error, print_success, print_warning

app = typer.Typer(
    help="Show or initialize the softctl configuration.",
    no_args_is_help=True,
)


@app.command()
def show(config_path: ConfigOption = None) -> None:
    """Print the effective configuration as JSON."""
    config = get_config(config_path)
    console.print_json(config.model_dump_json())


@app.command()
def init(
    config_path: ConfigOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with the default settings."""
    target = config_path or get_config_path()
    if target.exists() and not force:
        print_warning(f"Config already exists: {target} (use --force to overwrite)")
        raise typer.Exit(code=1)

    try:
        saved = save_config(SoftctlConfig(), target)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Config written to {saved}")
