"""Install command implementation.

Runs the modular Arch Linux installer: locale, time zone, package groups,
services and post-install steps.
"""

import logging
from typing import Annotated

import typer

from archforge.cli.types import DryRunOption, YesOption, fail, warn_unknown_args
from archforge.core.config import load_config
from archforge.core.errors import ArchforgeError
from archforge.core.executor import get_executor
from archforge.core.logfile import setup_run_log
from archforge.core.privileges import require_command, require_root, warn_if_not_arch
from archforge.installer.prompter import Prompter
from archforge.installer.runner import Installer
from archforge.models.modules import Addon, InstallOptions, Module, ModuleSelection
from archforge.scanners.pacman import PacmanSource
from archforge.scanners.systemd import SystemdServiceManager
from archforge.utils.shell import sudo_user

logger = logging.getLogger(__name__)


def install(
    ctx: typer.Context,
    dry_run: DryRunOption = False,
    yes: YesOption = False,
    with_kde: Annotated[bool, typer.Option("--with-kde", help="Add KDE Plasma (Wayland) and apps.")] = False,
    with_dev: Annotated[bool, typer.Option("--with-dev", help="Add developer tooling.")] = False,
    with_gaming: Annotated[bool, typer.Option("--with-gaming", help="Add the gaming stack.")] = False,
    with_qol: Annotated[bool, typer.Option("--with-qol", help="Add quality-of-life utilities.")] = False,
    with_gpu: Annotated[bool, typer.Option("--with-gpu", help="Add the Intel + NVIDIA GPU stack.")] = False,
    with_audio: Annotated[bool, typer.Option("--with-audio", help="Add the PipeWire audio stack.")] = False,
    with_hw: Annotated[bool, typer.Option("--with-hw", help="Add hardware support packages.")] = False,
    with_printing: Annotated[bool, typer.Option("--with-printing", help="Add CUPS printing.")] = False,
    with_flatpak: Annotated[bool, typer.Option("--with-flatpak", help="Add Flatpak and Flathub.")] = False,
    with_zerotier: Annotated[bool, typer.Option("--with-zerotier", help="Add ZeroTier One.")] = False,
    with_tools: Annotated[
        bool, typer.Option("--with-tools", help="Add desktop tools: office, IRC, remote access, scanning and Docker.")
    ] = False,
    base_only: Annotated[bool, typer.Option("--base-only", help="Install the base module only.")] = False,
    no_base: Annotated[bool, typer.Option("--no-base", help="Leave out the base module.")] = False,
    skip_gaming: Annotated[bool, typer.Option("--skip-gaming", help="Leave out the gaming stack.")] = False,
    skip_qol: Annotated[bool, typer.Option("--skip-qol", help="Leave out quality-of-life utilities.")] = False,
    skip_dotnet: Annotated[bool, typer.Option("--skip-dotnet", help="Leave out the .NET SDK.")] = False,
    skip_code: Annotated[bool, typer.Option("--skip-code", help="Leave out VS Code (OSS).")] = False,
    no_reboot_note: Annotated[
        bool, typer.Option("--no-reboot-note", help="Do not print the reboot recommendation.")
    ] = False,
) -> None:
    """Install the Arch Linux baseline and the selected modules.

    Without any [bold]--with-*[/bold] flag every module is installed.
    Naming modules switches to modular mode: base plus the named modules.
    A dry run never prompts: every question takes its default, as with
    [bold]--yes[/bold].

    Examples:
        sudo archforge install --yes
        sudo archforge install --with-kde --with-audio --no-base
        sudo archforge install --dry-run --base-only
    """
    warn_unknown_args(ctx)

    flags = {
        Module.KDE: with_kde,
        Module.DEV: with_dev,
        Module.GAMING: with_gaming,
        Module.QOL: with_qol,
        Module.GPU: with_gpu,
        Module.AUDIO: with_audio,
        Module.HW: with_hw,
    }
    addon_flags = {
        Addon.PRINTING: with_printing,
        Addon.FLATPAK: with_flatpak,
        Addon.ZEROTIER: with_zerotier,
        Addon.TOOLS: with_tools,
    }
    selection = ModuleSelection.from_flags(
        [m for m, on in flags.items() if on],
        addons=[a for a, on in addon_flags.items() if on],
        no_base=no_base,
        base_only=base_only,
        skip_gaming=skip_gaming,
        skip_qol=skip_qol,
    )

    try:
        require_root("sudo archforge install [flags]")
        warn_if_not_arch()
        require_command("pacman")
        config = load_config()
    except ArchforgeError as e:
        fail(str(e), e)

    # Dry runs never prompt.
    assume_yes = yes or dry_run
    options = InstallOptions(
        selection=selection,
        dry_run=dry_run,
        assume_yes=assume_yes,
        skip_dotnet=skip_dotnet,
        skip_code=skip_code,
        show_reboot_note=not no_reboot_note,
        default_locale=config.locale,
        default_timezone=config.timezone,
        flatpak_apps=tuple(config.flatpak_apps),
        invoking_user=sudo_user(),
    )
    log_path = setup_run_log("install")
    logger.info("Install options: %s", options)

    installer = Installer(
        options,
        get_executor(dry_run),
        PacmanSource(),
        SystemdServiceManager(),
        Prompter(assume_yes=assume_yes),
        log_path=log_path,
    )

    try:
        completed = installer.run()
    except ArchforgeError as e:
        fail(str(e), e)

    if not completed:
        raise typer.Exit(code=0)
