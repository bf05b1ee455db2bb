"""pacman operator: system refresh and batched, filtered installs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from archforge.core.executor import Command, Executor
from archforge.core.privileges import is_root
from archforge.models import catalog
from archforge.utils.formatting import print_section
from archforge.utils.shell import CommandResult

if TYPE_CHECKING:
    from archforge.core.report import RunReport
    from archforge.models.catalog import PackageGroup
    from archforge.scanners.base import PackageSource

logger = logging.getLogger(__name__)

INSTALL_ARGS = ("-S", "--needed", "--noconfirm")


def filter_installable(
    packages: Iterable[str],
    source: PackageSource,
) -> tuple[list[str], list[str]]:
    """Split candidates into installable and unavailable packages.

    Both lists keep the candidates' order and contain each name once;
    the first occurrence wins.

    Args:
        packages: Candidate package names.
        source: Package source.

    Returns:
        Tuple of (installable, unavailable).
    """
    installable: list[str] = []
    unavailable: list[str] = []
    seen: set[str] = set()

    for name in packages:
        if name in seen:
            continue
        seen.add(name)
        if source.is_available(name):
            installable.append(name)
        else:
            unavailable.append(name)

    return installable, unavailable


class PacmanOperator:
    """Drive pacman through an executor.

    Attributes:
        executor: Executor that runs (or prints) each pacman command.
        source: Package source used to filter groups.

    Example:
        >>> operator = PacmanOperator(get_executor(dry_run=True), PacmanSource())
        >>> operator.install(["htop", "neovim"])
    """

    def __init__(self, executor: Executor, source: PackageSource) -> None:
        self.executor = executor
        self.source = source

    def refresh(self) -> CommandResult:
        """Synchronize databases and upgrade the system."""
        return self._transaction(Command.of("pacman", "-Syu", "--noconfirm"))

    def refresh_keyring(self) -> CommandResult:
        """Sync databases and update the keyring before a large install."""
        return self._transaction(Command.of("pacman", "-Sy", "--needed", "--noconfirm", catalog.KEYRING))

    def install(self, packages: list[str]) -> CommandResult | None:
        """Install packages in a single ``--needed`` transaction.

        Args:
            packages: Package names to install.

        Returns:
            CommandResult, or None if there was nothing to install.

        Raises:
            CommandError: If pacman fails.
        """
        if not packages:
            return None
        return self._transaction(Command.of("pacman", *INSTALL_ARGS, *packages))

    def install_group(self, group: PackageGroup, report: RunReport) -> list[str]:
        """Install the available members of a package group.

        Unavailable packages are reported and dropped. A group with no
        installable member is skipped.

        Args:
            group: Group to install.
            report: Run report receiving warnings and progress.

        Returns:
            Package names passed to pacman (empty if the group was skipped).
        """
        installable, unavailable = filter_installable(group.packages, self.source)

        for name in unavailable:
            report.warn("packages", f"Package not found in repos, skipping: {name}")

        if not installable:
            report.info("packages", f"No installable packages in group: {group.label}")
            return []

        print_section(f"Installing: {group.label}")
        logger.info("Installing group %s: %s", group.label, " ".join(installable))
        self.install(installable)
        return installable

    def install_sudo(self, packages: list[str]) -> CommandResult | None:
        """Install packages, going through sudo when not already root.

        Args:
            packages: Package names to install.

        Returns:
            CommandResult, or None if there was nothing to install.
        """
        if not packages:
            return None
        prefix = () if is_root() else ("sudo",)
        return self._transaction(Command.of(*prefix, "pacman", *INSTALL_ARGS, *packages))

    def _transaction(self, command: Command) -> CommandResult:
        try:
            return self.executor.run(command)
        finally:
            self.source.invalidate()
