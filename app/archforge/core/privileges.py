"""Precondition checks shared by every mutating command."""

import logging
import os

from archforge.core.errors import PreconditionError
from archforge.core.paths import HostLayout
from archforge.utils.formatting import print_warning
from archforge.utils.shell import command_exists

logger = logging.getLogger(__name__)


def is_root() -> bool:
    """Check if the effective user is root."""
    return os.geteuid() == 0


def require_root(hint: str = "sudo archforge ...") -> None:
    """Abort unless running with administrative privileges.

    Raises:
        PreconditionError: If the effective UID is not 0.
    """
    if not is_root():
        raise PreconditionError(f"Run as root: {hint}")


def is_arch_linux(layout: HostLayout | None = None) -> bool:
    """Check for /etc/arch-release."""
    return (layout or HostLayout()).arch_release.exists()


def warn_if_not_arch(layout: HostLayout | None = None) -> None:
    """Print a warning on non-Arch hosts without aborting."""
    if not is_arch_linux(layout):
        logger.warning("Host is not Arch Linux")
        print_warning("This tool targets Arch Linux.")


def require_command(name: str) -> None:
    """Abort if a required executable is missing from PATH.

    Raises:
        PreconditionError: If the command is not found.
    """
    if not command_exists(name):
        raise PreconditionError(f"{name} is required")
