"""Wizard command implementation.

Asks which modules to install and launches the installer with the
matching flags.
"""

import logging

import typer

from archforge.cli.types import DryRunOption, YesOption, warn_unknown_args
from archforge.installer.prompter import Prompter
from archforge.installer.wizard import run_wizard

logger = logging.getLogger(__name__)


def wizard(
    ctx: typer.Context,
    dry_run: DryRunOption = False,
    yes: YesOption = False,
) -> None:
    """Choose modules interactively, then run the installer.

    With [bold]--yes[/bold] every question takes its default and the
    installer is launched without further confirmation.
    """
    warn_unknown_args(ctx)

    code = run_wizard(Prompter(assume_yes=yes), dry_run=dry_run)
    logger.info("Installer exited with code %d", code)
    if code != 0:
        raise typer.Exit(code=code)
