"""systemd operator: enabling units that are present."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from archforge.core.executor import Command, Executor
from archforge.utils.shell import CommandResult

if TYPE_CHECKING:
    from archforge.core.report import RunReport
    from archforge.models.catalog import ServiceSpec
    from archforge.scanners.base import ServiceManager

logger = logging.getLogger(__name__)


class ServiceOperator:
    """Enable systemd units through an executor.

    Attributes:
        executor: Executor that runs (or prints) systemctl.
        services: Service manager deciding whether a unit exists.
    """

    def __init__(self, executor: Executor, services: ServiceManager) -> None:
        self.executor = executor
        self.services = services

    def enable(self, unit: str, now: bool = False) -> CommandResult:
        """Run ``systemctl enable [--now] <unit>``.

        Raises:
            CommandError: If systemctl fails.
        """
        args = ("enable", "--now", unit) if now else ("enable", unit)
        return self.executor.run(Command.of("systemctl", *args))

    def enable_if_present(self, spec: ServiceSpec, report: RunReport) -> bool:
        """Enable a unit when it exists; failures are advisory.

        Args:
            spec: Unit to enable.
            report: Run report receiving the outcome.

        Returns:
            True if systemctl was invoked.
        """
        if not self.services.exists(spec.unit):
            suffix = " --now" if spec.now else ""
            report.info("services", f"Service not found (skip enable{suffix}): {spec.unit}")
            return False

        with report.best_effort(f"enable {spec.unit}"):
            self.enable(spec.unit, now=spec.now)
        return True

    def enable_all(self, specs: Iterable[ServiceSpec], report: RunReport) -> list[str]:
        """Enable every present unit in order.

        Returns:
            Units for which systemctl was invoked.
        """
        enabled: list[str] = []
        for spec in specs:
            if self.enable_if_present(spec, report):
                enabled.append(spec.unit)
        return enabled
