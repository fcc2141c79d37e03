"""CLI commands for softctl."""
