"""User account models."""

import re
from dataclasses import dataclass, field
from pathlib import Path

from archforge.core.errors import InvalidInputError

USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]*$")
DEFAULT_SHELL = "/bin/bash"


def validate_username(name: str) -> str:
    """Check a username against the accepted pattern.

    Args:
        name: Candidate username.

    Returns:
        The username unchanged.

    Raises:
        InvalidInputError: If the name does not match ``^[a-z_][a-z0-9_-]*$``.
    """
    if not USERNAME_PATTERN.fullmatch(name):
        msg = f"Invalid username: '{name}' (use lowercase letters/digits/_/-)"
        raise InvalidInputError(msg)
    return name


@dataclass(frozen=True, slots=True)
class UserRecord:
    """A passwd entry.

    Attributes:
        name: Login name.
        uid: Numeric user ID.
        gid: Numeric primary group ID.
        home: Home directory.
        shell: Login shell.
    """

    name: str
    uid: int
    gid: int
    home: Path
    shell: str


@dataclass(frozen=True, slots=True)
class AccountRequest:
    """What the caller wants an account to look like.

    Attributes:
        username: Login name (validated on construction).
        shell: Requested login shell.
        home: Home directory override, or None to keep/derive it.
        with_password: Leave the password state alone instead of locking it.
    """

    username: str
    shell: str = DEFAULT_SHELL
    home: Path | None = None
    with_password: bool = False

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        validate_username(self.username)


@dataclass(frozen=True, slots=True)
class AccountSummary:
    """End state of a provisioned account, for display.

    Attributes:
        username: Login name.
        created: True if the account was created in this run.
        home: Home directory.
        shell: Login shell.
        primary_group: Primary group name.
        groups: All group names the user belongs to.
        home_owner: "user:group" owning the home directory, or "?".
        home_mode: Octal permission bits of the home directory, or "?".
        password_locked: Whether password login is locked.
    """

    username: str
    created: bool
    home: Path
    shell: str
    primary_group: str
    groups: tuple[str, ...] = field(default_factory=tuple)
    home_owner: str = "?"
    home_mode: str = "?"
    password_locked: bool = False

    def rows(self) -> list[tuple[str, str]]:
        """Label/value pairs for the summary table."""
        return [
            ("User", self.username),
            ("Home", str(self.home)),
            ("Shell", self.shell),
            ("Primary grp", self.primary_group),
            ("Groups", " ".join(self.groups)),
            ("Home owner", self.home_owner),
            ("Home perms", self.home_mode),
            ("Password", "LOCKED" if self.password_locked else "not locked"),
        ]
