"""The installer: system setup, package groups, services, post-steps.

An Installer walks a fixed sequence of phases. Any unguarded failure
raises and ends the run; service enablement, Flatpak operations and the
XDG directory refresh are best effort and only leave advisory findings
in the RunReport.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from archforge.core.errors import ArchforgeError
from archforge.core.executor import Command
from archforge.core.pacman_conf import ensure_multilib
from archforge.core.paths import HostLayout
from archforge.core.report import RunReport
from archforge.installer import system_setup
from archforge.installer.planner import (
    plan_flatpak_apps,
    plan_groups,
    plan_services,
    skipped_modules,
    wants_flatpak,
)
from archforge.models.modules import Addon, Module
from archforge.operators.pacman import PacmanOperator
from archforge.operators.systemd import ServiceOperator
from archforge.scanners.accounts import SystemAccountDatabase
from archforge.utils.formatting import console, create_summary_table, print_section, print_success
from archforge.utils.shell import command_exists

if TYPE_CHECKING:
    from archforge.core.executor import Executor
    from archforge.installer.prompter import Prompter
    from archforge.models.modules import InstallOptions
    from archforge.scanners.base import AccountDatabase, PackageSource, ServiceManager

logger = logging.getLogger(__name__)

FLATHUB_NAME = "flathub"
FLATHUB_URL = "https://flathub.org/repo/flathub.flatpakrepo"


class InstallPhase(Enum):
    """Installer progress, in order."""

    UNCONFIGURED = "unconfigured"
    PARTITIONS_CONFIRMED = "partitions confirmed"
    LOCALE_SET = "locale set"
    TIMEZONE_SET = "time zone set"
    PACKAGES_INSTALLED = "packages installed"
    SERVICES_ENABLED = "services enabled"
    POST_STEPS_DONE = "post-steps done"


class Installer:
    """Run one installation.

    Attributes:
        options: Immutable run options.
        executor: Executor for every mutating action.
        prompter: Source of interactive answers.
        layout: Host file layout.
        report: Findings recorded during the run.
        phase: Last phase reached.

    Example:
        >>> installer = Installer(options, get_executor(True), PacmanSource(),
        ...                       SystemdServiceManager(), Prompter(assume_yes=True))
        >>> installer.run()
    """

    def __init__(
        self,
        options: InstallOptions,
        executor: Executor,
        source: PackageSource,
        services: ServiceManager,
        prompter: Prompter,
        layout: HostLayout | None = None,
        report: RunReport | None = None,
        accounts: AccountDatabase | None = None,
        log_path: Path | None = None,
    ) -> None:
        self.options = options
        self.executor = executor
        self.prompter = prompter
        self.layout = layout or HostLayout()
        self.report = report or RunReport()
        self.accounts = accounts or SystemAccountDatabase()
        self.log_path = log_path
        self.phase = InstallPhase.UNCONFIGURED
        self.installed: dict[str, list[str]] = {}
        self._services = services
        self._packages = PacmanOperator(executor, source)
        self._service_operator = ServiceOperator(executor, services)

    def run(self) -> bool:
        """Run every phase.

        Returns:
            True when the run completed, False when the operator declined
            the final confirmation (nothing was installed).

        Raises:
            ArchforgeError: On any fatal failure. The error is recorded as a
                FATAL finding against the last phase reached first.
        """
        try:
            return self._run_phases()
        except ArchforgeError as e:
            self.report.fatal(self.phase.value, str(e))
            raise

    def _run_phases(self) -> bool:
        logger.info("Starting installer (dry_run=%s)", self.executor.dry_run)

        system_setup.confirm_partitions(self.prompter, self.report)
        self._advance(InstallPhase.PARTITIONS_CONFIRMED)

        locale = system_setup.select_locale(
            self.prompter, self.layout, self.options.default_locale, self.report
        )
        system_setup.apply_locale(self.executor, self.layout, locale, self.report)
        self._advance(InstallPhase.LOCALE_SET)

        timezone = system_setup.select_timezone(
            self.prompter, self.layout, self.options.default_timezone, self.report
        )
        system_setup.apply_timezone(self.executor, self.layout, timezone, self.report)
        self._advance(InstallPhase.TIMEZONE_SET)

        self.show_plan()
        if not self.prompter.assume_yes and not self.prompter.confirm("Proceed?", default=False):
            console.print("Aborted.")
            logger.info("Operator declined to proceed")
            return False

        ensure_multilib(self.executor, self.layout, self.report)
        if self.options.selection.has(Addon.TOOLS):
            self.report.info("packages", "Refreshing the Arch Linux keyring...")
            self._packages.refresh_keyring()
        self.report.info("packages", "Refreshing package databases and updating system...")
        self._packages.refresh()
        self.install_packages()
        self._advance(InstallPhase.PACKAGES_INSTALLED)

        self.enable_services()
        self._advance(InstallPhase.SERVICES_ENABLED)

        self.configure_flatpak()
        self.refresh_user_dirs()
        self._advance(InstallPhase.POST_STEPS_DONE)

        self.print_summary()
        return True

    def _advance(self, phase: InstallPhase) -> None:
        logger.info("Phase: %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def show_plan(self) -> None:
        """Print the plan table."""
        print_section("Step 4/4: Summary")
        table = create_summary_table("Install plan", ("Setting", "Value"))
        table.add_row("Dry run", "yes" if self.executor.dry_run else "no")
        table.add_row("Mode", self.options.selection.mode)
        for module in Module:
            enabled = self.options.selection.has(module)
            table.add_row(f"  {module.value}", "[enabled]on[/]" if enabled else "[disabled]off[/]")
        for addon in Addon:
            enabled = self.options.selection.has(addon)
            table.add_row(addon.value, "[enabled]on[/]" if enabled else "[disabled]off[/]")
        table.add_row("Skip dotnet", "yes" if self.options.skip_dotnet else "no")
        table.add_row("Skip code", "yes" if self.options.skip_code else "no")
        table.add_row("Groups", str(len(plan_groups(self.options))))
        table.add_row("Log file", str(self.log_path) if self.log_path else "-")
        console.print(table)

    def install_packages(self) -> None:
        """Install every planned group, one pacman transaction per group."""
        for module in skipped_modules(self.options):
            self.report.info("packages", f"Skipping module: {module.value}")

        for group in plan_groups(self.options):
            installed = self._packages.install_group(group, self.report)
            if installed:
                self.installed[group.label] = installed

    def enable_services(self) -> None:
        """Enable the planned services that exist on the host."""
        print_section("Services")
        self._services.refresh()
        self._service_operator.enable_all(plan_services(self.options), self.report)

    def configure_flatpak(self) -> None:
        """Register Flathub and install configured apps, best effort."""
        if not wants_flatpak(self.options):
            return
        if not self.executor.dry_run and not command_exists("flatpak"):
            self.report.warn("flatpak", "flatpak command not found; skipping Flathub setup.")
            return

        with self.report.best_effort("flatpak remote"):
            self.executor.run(
                Command.of("flatpak", "remote-add", "--if-not-exists", FLATHUB_NAME, FLATHUB_URL)
            )

        for app_id in plan_flatpak_apps(self.options):
            with self.report.best_effort(f"flatpak install {app_id}"):
                self.executor.run(
                    Command.of("flatpak", "install", "-y", "--noninteractive", FLATHUB_NAME, app_id)
                )

    def refresh_user_dirs(self) -> None:
        """Run xdg-user-dirs-update as the invoking user, best effort."""
        user = self.options.invoking_user
        if not user or self.accounts.lookup(user) is None:
            return

        print_section("User post-setup")
        with self.report.best_effort("xdg-user-dirs"):
            self.executor.run(Command.of("sudo", "-u", user, "xdg-user-dirs-update"))

    def print_summary(self) -> None:
        """Print the closing summary."""
        print_section("DONE")
        if self.installed:
            table = create_summary_table("Installed groups", ("Group", "Packages"))
            for label, packages in self.installed.items():
                table.add_row(label, str(len(packages)))
            console.print(table)
        else:
            console.print("No package groups were installed.")

        console.print("Recommended next steps:")
        console.print("  1) Reboot before gaming or a Plasma Wayland login.")
        console.print('  2) In SDDM, choose the "Plasma (Wayland)" session.')
        console.print("  3) If the Wayland session has issues, run: sudo archforge repair")

        if self.report.has_warnings:
            console.print(f"[warning]{len(self.report.warnings)} warning(s) recorded during the run.[/]")
        if self.options.show_reboot_note:
            print_success("Reboot recommended now.")
        if self.log_path is not None:
            console.print(f"Log saved to: {self.log_path}", soft_wrap=True)
