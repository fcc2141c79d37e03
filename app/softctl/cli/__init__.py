"""CLI module for softctl."""

from softctl.cli.main import app

__all__ = ["app"]
