"""Shared options and helpers for CLI commands.

This module provides the options and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

import getpass
import sys
from pathlib import Path
from typing import Annotated

import typer

from softctl.core.channel import decode_frames, stream_sink
from softctl.core.config import ConfigError, SoftctlConfig, load_config
from softctl.core.executor import Sink
from softctl.models.progress import EventStatus, ProgressEvent
from softctl.utils.formatting import console, format_event, print_error

IdentityOption = Annotated[
    str | None,
    typer.Option(
        "--identity",
        "-i",
        help="Identity whose inventory is used (defaults to the current user).",
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Path to an alternative config file.",
        dir_okay=False,
    ),
]

StreamOption = Annotated[
    bool,
    typer.Option(
        "--stream",
        help="Write raw stream frames to stdout instead of rendered output.",
    ),
]


def resolve_identity(identity: str | None) -> str:
    """Return the given identity or the login name of the current user."""
    if identity:
        return identity
    return getpass.getuser()


def get_config(path: Path | None) -> SoftctlConfig:
    """Load the effective configuration or exit with an error.

    Raises:
        typer.Exit: If the config file is invalid.
    """
    try:
        return load_config(path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def render_sink() -> Sink:
    """Create a sink that renders each frame on the console."""

    def write(frame: str) -> None:
        for event in decode_frames(frame):
            console.print(format_event(event))

    return write


def get_sink(stream: bool) -> Sink:
    """Select the raw stdout sink or the rendering sink."""
    if stream:
        return stream_sink(sys.stdout)
    return render_sink()


def exit_code(event: ProgressEvent) -> int:
    """Map the terminal event of an operation to a process exit code."""
    return 1 if event.status == EventStatus.ERROR else 0
