"""Shell execution utilities.

Provides read-only subprocess helpers used by queries, and an
interactive runner for long-lived child processes such as QEMU.
Mutating commands go through archforge.core.executor instead.
"""

import os
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


# Query output (pacman, passwd -S, systemctl) is parsed, so pin the locale.
QUERY_ENV: dict[str, str] = {"LC_ALL": "C"}


def run_command(
    args: Sequence[str],
    *,
    timeout: float | None = 60.0,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Run a read-only query and capture its output.

    A non-zero exit is reported through the result, never raised:
    for queries such as ``pacman -Si`` it is an answer, not a failure.

    Args:
        args: Program and arguments.
        timeout: Seconds before the query is abandoned.
        env: Extra environment on top of the C locale.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.TimeoutExpired: If the query exceeds timeout.
        OSError: If the program cannot be started.
    """
    completed = subprocess.run(
        list(args),
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
        env={**os.environ, **QUERY_ENV, **(env or {})},
    )
    return CommandResult(completed.stdout, completed.stderr, completed.returncode)


def command_exists(name: str) -> bool:
    """Check if a program is on PATH."""
    return shutil.which(name) is not None


def run_interactive(args: Sequence[str], *, env: dict[str, str] | None = None) -> int:
    """Run a foreground child that owns the terminal until it exits.

    Used for the installer launched by the wizard and for QEMU. Nothing
    is captured, so prompts and progress reach the operator directly.

    Args:
        args: Program and arguments.
        env: Extra environment variables.

    Returns:
        Exit code of the child.

    Raises:
        OSError: If the program cannot be started.
    """
    return subprocess.run(list(args), check=False, env={**os.environ, **(env or {})}).returncode


def sudo_user() -> str | None:
    """Return the non-root user that invoked sudo, if any.

    Returns:
        Value of SUDO_USER unless it is unset, empty or "root".
    """
    user = os.environ.get("SUDO_USER", "")
    if not user or user == "root":
        return None
    return user


def is_executable(path: str | os.PathLike[str]) -> bool:
    """Check if a path is an executable regular file.

    Args:
        path: Filesystem path, e.g. a login shell.

    Returns:
        True if the file exists and has an execute bit for the caller.
    """
    return os.path.isfile(path) and os.access(path, os.X_OK)
