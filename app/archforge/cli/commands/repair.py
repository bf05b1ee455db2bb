"""Repair command implementation.

Patches an existing installation back to a bootable KDE/SDDM session:
repositories, audio and graphics stacks, login manager, NVIDIA boot
settings and the user's session files.
"""

import logging
from typing import Annotated

import typer

from archforge.cli.types import DryRunOption, fail, warn_unknown_args
from archforge.core.errors import ArchforgeError
from archforge.core.executor import get_executor
from archforge.core.logfile import setup_run_log
from archforge.core.privileges import require_command, require_root, warn_if_not_arch
from archforge.repair.patcher import Patcher, RepairOptions
from archforge.scanners.accounts import SystemAccountDatabase
from archforge.scanners.pacman import PacmanSource
from archforge.scanners.systemd import SystemdServiceManager
from archforge.utils.shell import sudo_user

logger = logging.getLogger(__name__)


def repair(
    ctx: typer.Context,
    user: Annotated[
        str | None,
        typer.Option(
            "--user",
            "-u",
            help="Account whose session files are fixed (default: the sudo user).",
        ),
    ] = None,
    hostname: Annotated[
        str | None,
        typer.Option(
            "--hostname",
            help="Set a new hostname.",
        ),
    ] = None,
    dry_run: DryRunOption = False,
    reset_kde_config: Annotated[
        bool,
        typer.Option(
            "--reset-kde-config",
            help="Move the user's Plasma configuration aside (backed up).",
        ),
    ] = False,
) -> None:
    """Repair a broken desktop installation.

    Examples:
        sudo archforge repair
        sudo archforge repair --user alice --hostname archbox
        sudo archforge repair --dry-run --reset-kde-config
    """
    warn_unknown_args(ctx)

    try:
        require_root("sudo archforge repair [--user NAME] [--hostname NAME]")
        warn_if_not_arch()
        require_command("pacman")
    except ArchforgeError as e:
        fail(str(e), e)

    options = RepairOptions(
        user=user or sudo_user(),
        hostname=hostname,
        reset_kde_config=reset_kde_config,
    )
    log_path = setup_run_log("repair")
    logger.info("Repair options: %s", options)

    patcher = Patcher(
        options,
        get_executor(dry_run),
        PacmanSource(),
        SystemdServiceManager(),
        SystemAccountDatabase(),
        log_path=log_path,
    )

    try:
        patcher.run()
    except ArchforgeError as e:
        fail(str(e), e)
