"""Shared types and utilities for CLI commands.

This module provides the option aliases and helpers used across the
installer-family command modules to avoid code duplication.
"""

import logging
from typing import Annotated, NoReturn

import typer

from archforge.utils.formatting import print_error, print_warning

logger = logging.getLogger(__name__)

# Installer-family commands tolerate unknown flags: they warn and continue.
LENIENT_CONTEXT: dict[str, bool] = {
    "allow_extra_args": True,
    "ignore_unknown_options": True,
}

DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        "--dry",
        help="Print mutating actions instead of performing them.",
    ),
]

YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Accept every default without prompting.",
    ),
]


def warn_unknown_args(ctx: typer.Context) -> list[str]:
    """Warn about arguments the command does not understand.

    Args:
        ctx: Context of an installer-family command.

    Returns:
        The ignored arguments.
    """
    ignored = list(ctx.args)
    for arg in ignored:
        logger.warning("Ignoring unknown argument: %s", arg)
        print_warning(f"Unknown option: {arg}")
    return ignored


def fail(message: str, cause: BaseException | None = None) -> NoReturn:
    """Print an error and exit with status 1.

    Args:
        message: Error message shown to the operator.
        cause: Exception that triggered the failure, chained onto the exit.

    Raises:
        typer.Exit: Always, with code 1.
    """
    logger.error(message)
    print_error(message)
    raise typer.Exit(code=1) from cause
