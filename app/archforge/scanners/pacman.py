"""pacman-backed package source."""

import logging
import subprocess

from archforge.scanners.base import PackageSource
from archforge.utils.shell import run_command

logger = logging.getLogger(__name__)


class PacmanSource(PackageSource):
    """Query packages with ``pacman -Si`` and ``pacman -Qq``.

    Answers are cached for the lifetime of the instance, which is one
    run. Call invalidate() after installing packages so installed-state
    questions are asked again.
    """

    # pacman -Si may hit a slow sync database on first use
    _QUERY_TIMEOUT: float = 60.0

    def __init__(self) -> None:
        self._available: dict[str, bool] = {}
        self._installed: dict[str, bool] = {}

    def is_available(self, name: str) -> bool:
        """Check repository availability with ``pacman -Si``."""
        if name not in self._available:
            self._available[name] = self._query(["pacman", "-Si", name])
        return self._available[name]

    def is_installed(self, name: str) -> bool:
        """Check installed state with ``pacman -Qq``."""
        if name not in self._installed:
            self._installed[name] = self._query(["pacman", "-Qq", name])
        return self._installed[name]

    def invalidate(self) -> None:
        """Drop cached installed-state answers."""
        self._installed.clear()

    def _query(self, args: list[str]) -> bool:
        try:
            result = run_command(args, timeout=self._QUERY_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Query %s failed: %s", " ".join(args), e)
            return False
        logger.debug("Query %s -> %d", " ".join(args), result.returncode)
        return result.success
