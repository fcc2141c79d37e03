"""Utility modules for softctl.

This module exports commonly used utility functions.
"""

from softctl.utils.formatting import (
    console,
    create_application_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from softctl.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_application_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
