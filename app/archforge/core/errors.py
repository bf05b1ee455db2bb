"""Exception hierarchy for archforge.

Every error the CLI is expected to report cleanly derives from
ArchforgeError. Anything else is a programming error and is left to
propagate with a traceback.
"""


class ArchforgeError(Exception):
    """Base exception for all archforge errors."""


class PreconditionError(ArchforgeError):
    """Raised when the host does not meet a hard requirement.

    Examples: not running as root, pacman missing, not an Arch host
    where Arch is mandatory.
    """


class InvalidInputError(ArchforgeError):
    """Raised when user input cannot be accepted and no fallback exists."""
