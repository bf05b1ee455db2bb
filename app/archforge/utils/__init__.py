"""Utility modules for archforge.

This module exports commonly used utility functions.
"""

from archforge.utils.formatting import (
    console,
    err_console,
    print_command,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from archforge.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "err_console",
    "print_command",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
