"""Typed commands and the executors that run or simulate them.

A Command is an argument vector plus optional working directory,
environment additions and stdout capture file. It is never turned into
a shell string for execution, only for display.

SubprocessExecutor performs every mutating action for real.
DryRunExecutor prints each action with a literal ``[DRY-RUN]`` prefix
and touches nothing.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import sys
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from archforge.core.errors import ArchforgeError
from archforge.utils.formatting import print_block, print_command
from archforge.utils.shell import CommandResult

logger = logging.getLogger(__name__)

# Output of executed commands; reaches the run log through the archforge logger.
output_logger = logging.getLogger("archforge.output")


class CommandError(ArchforgeError):
    """Raised when a checked command fails or cannot be started.

    Attributes:
        command: The command that failed.
        returncode: Exit status, or None if the process never started.
    """

    def __init__(self, command: Command, returncode: int | None, detail: str = "") -> None:
        self.command = command
        self.returncode = returncode
        reason = f"exit status {returncode}" if returncode is not None else detail
        super().__init__(f"Command failed ({reason}): {command}")


@dataclass(frozen=True, slots=True)
class Command:
    """An external command to execute.

    Attributes:
        argv: Program and arguments.
        cwd: Working directory, or None for the current one.
        env: Extra environment variables merged over the current environment.
        stdout: File that receives the command's standard output.
    """

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    stdout: Path | None = None

    def __post_init__(self) -> None:
        """Validate command data after initialization."""
        if not self.argv:
            msg = "Command argv cannot be empty"
            raise ValueError(msg)

    @classmethod
    def of(cls, *argv: str | os.PathLike[str], **kwargs: object) -> Command:
        """Build a command from positional arguments.

        Example:
            >>> Command.of("pacman", "-S", "--needed", "vim")
        """
        return cls(tuple(os.fspath(a) for a in argv), **kwargs)  # type: ignore[arg-type]

    @property
    def program(self) -> str:
        """Name of the executable."""
        return self.argv[0]

    def __str__(self) -> str:
        rendered = shlex.join(self.argv)
        if self.env:
            assignments = " ".join(f"{k}={shlex.quote(v)}" for k, v in self.env.items())
            rendered = f"{assignments} {rendered}"
        if self.stdout is not None:
            rendered = f"{rendered} > {shlex.quote(str(self.stdout))}"
        return rendered


class Executor(ABC):
    """Abstract executor for mutating actions.

    Every step that changes the system calls one of these methods, so a
    single switch decides between real execution and dry-run output.
    """

    @property
    @abstractmethod
    def dry_run(self) -> bool:
        """Check if this executor only simulates actions."""

    @abstractmethod
    def run(self, command: Command, *, check: bool = True) -> CommandResult:
        """Execute a command.

        Args:
            command: Command to execute.
            check: If True, raise CommandError on non-zero exit.

        Returns:
            CommandResult with the exit status. Without a stdout file the
            merged output is echoed, copied into the run log and returned
            in CommandResult.stdout.

        Raises:
            CommandError: If check=True and the command fails, or the
                executable cannot be started.
        """

    @abstractmethod
    def write_file(self, path: Path, text: str, mode: int | None = None) -> None:
        """Replace a file's content, creating it if needed."""

    @abstractmethod
    def append_file(self, path: Path, text: str) -> None:
        """Append text to a file."""

    @abstractmethod
    def copy_file(self, src: Path, dst: Path) -> None:
        """Copy a file preserving metadata."""

    @abstractmethod
    def make_dirs(self, path: Path, mode: int | None = None) -> None:
        """Create a directory and its parents if missing."""

    @abstractmethod
    def remove_file(self, path: Path) -> None:
        """Remove a file if it exists."""


class SubprocessExecutor(Executor):
    """Executor that performs every action on the live system."""

    @property
    def dry_run(self) -> bool:
        """Real executor never simulates."""
        return False

    def run(self, command: Command, *, check: bool = True) -> CommandResult:
        print_command("RUN", str(command))
        logger.info("RUN %s", command)

        env = {**os.environ, **command.env} if command.env else None
        output = ""
        try:
            if command.stdout is not None:
                command.stdout.parent.mkdir(parents=True, exist_ok=True)
                with command.stdout.open("w", encoding="utf-8") as out:
                    returncode = subprocess.run(
                        list(command.argv),
                        check=False,
                        cwd=command.cwd,
                        env=env,
                        stdout=out,
                        stderr=subprocess.STDOUT,
                    ).returncode
            else:
                returncode, output = self._stream(command, env)
        except OSError as e:
            logger.error("Cannot start %s: %s", command.program, e)
            raise CommandError(command, None, str(e)) from e

        if returncode != 0:
            logger.warning("Command exited with %d: %s", returncode, command)
            if check:
                raise CommandError(command, returncode)

        return CommandResult(stdout=output, stderr="", returncode=returncode)

    def _stream(self, command: Command, env: dict[str, str] | None) -> tuple[int, str]:
        """Run a command, echoing its merged output and copying it into the run log."""
        proc = subprocess.Popen(
            list(command.argv),
            cwd=command.cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
        lines: list[str] = []
        if proc.stdout is not None:
            with proc.stdout as stream:
                for line in stream:
                    sys.stdout.write(line)
                    sys.stdout.flush()
                    output_logger.debug("[%s] %s", command.program, line.rstrip("\n"))
                    lines.append(line)
        return proc.wait(), "".join(lines)

    def write_file(self, path: Path, text: str, mode: int | None = None) -> None:
        print_command("RUN", f"write {path}")
        logger.info("WRITE %s (%d bytes)", path, len(text))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        if mode is not None:
            path.chmod(mode)

    def append_file(self, path: Path, text: str) -> None:
        print_command("RUN", f"append {path}")
        logger.info("APPEND %s (%d bytes)", path, len(text))
        with path.open("a", encoding="utf-8") as f:
            f.write(text)

    def copy_file(self, src: Path, dst: Path) -> None:
        print_command("RUN", f"cp -a {src} {dst}")
        logger.info("COPY %s -> %s", src, dst)
        shutil.copy2(src, dst)

    def make_dirs(self, path: Path, mode: int | None = None) -> None:
        print_command("RUN", f"mkdir -p {path}")
        logger.info("MKDIR %s", path)
        path.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            path.chmod(mode)

    def remove_file(self, path: Path) -> None:
        print_command("RUN", f"rm -f {path}")
        logger.info("REMOVE %s", path)
        path.unlink(missing_ok=True)


class DryRunExecutor(Executor):
    """Executor that prints every action instead of performing it."""

    PREFIX = "DRY-RUN"

    @property
    def dry_run(self) -> bool:
        """Dry-run executor always simulates."""
        return True

    def run(self, command: Command, *, check: bool = True) -> CommandResult:
        print_command(self.PREFIX, str(command))
        logger.info("DRY-RUN %s", command)
        return CommandResult(stdout="", stderr="", returncode=0)

    def write_file(self, path: Path, text: str, mode: int | None = None) -> None:
        print_command(self.PREFIX, f"write {path}:")
        print_block(text.rstrip("\n"))
        logger.info("DRY-RUN write %s", path)

    def append_file(self, path: Path, text: str) -> None:
        print_command(self.PREFIX, f"append {path}:")
        print_block(text.rstrip("\n"))
        logger.info("DRY-RUN append %s", path)

    def copy_file(self, src: Path, dst: Path) -> None:
        print_command(self.PREFIX, f"cp -a {src} {dst}")
        logger.info("DRY-RUN copy %s -> %s", src, dst)

    def make_dirs(self, path: Path, mode: int | None = None) -> None:
        print_command(self.PREFIX, f"mkdir -p {path}")
        logger.info("DRY-RUN mkdir %s", path)

    def remove_file(self, path: Path) -> None:
        print_command(self.PREFIX, f"rm -f {path}")
        logger.info("DRY-RUN remove %s", path)


def get_executor(dry_run: bool = False) -> Executor:
    """Get the executor for the requested mode.

    Args:
        dry_run: Whether to simulate instead of executing.

    Returns:
        DryRunExecutor or SubprocessExecutor.
    """
    return DryRunExecutor() if dry_run else SubprocessExecutor()
