"""In-memory fakes for host queries, executors and prompts.

Shared by the unit tests; importable because tests/ is on the pytest
pythonpath.
"""

from collections.abc import Iterable
from pathlib import Path

from archforge.core.executor import Command, CommandError, Executor
from archforge.installer.prompter import Prompter
from archforge.models.account import UserRecord
from archforge.scanners.base import AccountDatabase, PackageSource, ServiceManager
from archforge.utils.shell import CommandResult


class FakePackageSource(PackageSource):
    """Repository with a fixed set of available and installed packages."""

    def __init__(self, available: Iterable[str] = (), installed: Iterable[str] = ()) -> None:
        self.available = set(available)
        self.installed = set(installed)
        self.invalidated = 0

    def is_available(self, name: str) -> bool:
        return name in self.available

    def is_installed(self, name: str) -> bool:
        return name in self.installed

    def invalidate(self) -> None:
        self.invalidated += 1


class FakeServiceManager(ServiceManager):
    """Unit catalogue with a fixed set of unit files."""

    def __init__(self, units: Iterable[str] = ()) -> None:
        self.units = set(units)
        self.refreshed = 0

    def exists(self, unit: str) -> bool:
        return unit in self.units

    def refresh(self) -> None:
        self.refreshed += 1


class FakeAccountDatabase(AccountDatabase):
    """Users and groups held in dictionaries."""

    def __init__(
        self,
        users: Iterable[UserRecord] = (),
        groups: Iterable[str] = (),
        memberships: dict[str, list[str]] | None = None,
        locked: Iterable[str] = (),
    ) -> None:
        self.users = {u.name: u for u in users}
        self.groups = set(groups)
        self.memberships = memberships or {}
        self.locked = set(locked)

    def lookup(self, name: str) -> UserRecord | None:
        return self.users.get(name)

    def group_exists(self, name: str) -> bool:
        return name in self.groups

    def primary_group(self, name: str) -> str | None:
        return name if name in self.users else None

    def groups_of(self, name: str) -> list[str]:
        if name not in self.users:
            return []
        return [name, *self.memberships.get(name, [])]

    def password_locked(self, name: str) -> bool:
        return name in self.locked


class RecordingExecutor(Executor):
    """Executor that records every action instead of performing it.

    Attributes:
        commands: Argument vectors of executed commands, in order.
        writes: Final text written per path.
        copies: (src, dst) pairs.
        dirs: Directories created.
        removed: Files removed.
        fail_programs: Programs whose commands raise CommandError.
    """

    def __init__(self, fail_programs: Iterable[str] = (), simulate: bool = False) -> None:
        self.commands: list[tuple[str, ...]] = []
        self.writes: dict[Path, str] = {}
        self.appends: dict[Path, str] = {}
        self.copies: list[tuple[Path, Path]] = []
        self.dirs: list[Path] = []
        self.removed: list[Path] = []
        self.fail_programs = set(fail_programs)
        self._simulate = simulate

    @property
    def dry_run(self) -> bool:
        return self._simulate

    def run(self, command: Command, *, check: bool = True) -> CommandResult:
        self.commands.append(command.argv)
        if command.program in self.fail_programs:
            if check:
                raise CommandError(command, 1)
            return CommandResult(stdout="", stderr="", returncode=1)
        return CommandResult(stdout="", stderr="", returncode=0)

    def write_file(self, path: Path, text: str, mode: int | None = None) -> None:
        self.writes[path] = text

    def append_file(self, path: Path, text: str) -> None:
        self.appends[path] = self.appends.get(path, "") + text

    def copy_file(self, src: Path, dst: Path) -> None:
        self.copies.append((src, dst))

    def make_dirs(self, path: Path, mode: int | None = None) -> None:
        self.dirs.append(path)

    def remove_file(self, path: Path) -> None:
        self.removed.append(path)

    def ran(self, *prefix: str) -> bool:
        """Check if any recorded command starts with the given arguments."""
        return any(argv[: len(prefix)] == prefix for argv in self.commands)

    def find(self, *prefix: str) -> list[tuple[str, ...]]:
        """All recorded commands starting with the given arguments."""
        return [argv for argv in self.commands if argv[: len(prefix)] == prefix]


class ScriptedPrompter(Prompter):
    """Prompter that replays canned answers and records the questions.

    An empty string answer to ask() takes the default, like pressing Enter.
    """

    def __init__(self, answers: Iterable[str | bool] = (), assume_yes: bool = False) -> None:
        super().__init__(assume_yes=assume_yes)
        self.answers = list(answers)
        self.questions: list[str] = []

    def ask(self, message: str, default: str = "") -> str:
        if self.assume_yes:
            return default
        self.questions.append(message)
        answer = self.answers.pop(0)
        assert isinstance(answer, str), f"expected text answer for {message!r}"
        return answer.strip() or default

    def confirm(self, message: str, default: bool = False) -> bool:
        if self.assume_yes:
            return default
        self.questions.append(message)
        answer = self.answers.pop(0)
        assert isinstance(answer, bool), f"expected yes/no answer for {message!r}"
        return answer


def make_user(name: str = "alice", home: Path | None = None, shell: str = "/bin/bash") -> UserRecord:
    """Create a test UserRecord."""
    return UserRecord(name=name, uid=1000, gid=1000, home=home or Path(f"/home/{name}"), shell=shell)

