"""systemd-backed service manager."""

import logging
import subprocess

from archforge.core.paths import HostLayout
from archforge.scanners.base import ServiceManager
from archforge.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)


class SystemdServiceManager(ServiceManager):
    """Look units up in ``systemctl list-unit-files`` and the unit directories.

    The unit list is loaded once and reused until refresh() is called.
    """

    def __init__(self, layout: HostLayout | None = None) -> None:
        self._layout = layout or HostLayout()
        self._units: set[str] | None = None

    def exists(self, unit: str) -> bool:
        """Check if the unit is listed by systemctl or has a unit file."""
        if unit in self._load_units():
            return True
        return any((directory / unit).exists() for directory in self._layout.unit_dirs)

    def refresh(self) -> None:
        """Reload the unit list on next use."""
        self._units = None

    def _load_units(self) -> set[str]:
        if self._units is not None:
            return self._units

        units: set[str] = set()
        if command_exists("systemctl"):
            try:
                result = run_command(["systemctl", "list-unit-files", "--no-legend"])
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning("Cannot list unit files: %s", e)
            else:
                for line in result.stdout.splitlines():
                    fields = line.split()
                    if fields:
                        units.add(fields[0])
        logger.debug("Loaded %d unit files", len(units))
        self._units = units
        return units
