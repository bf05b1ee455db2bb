"""Account provisioning: create or repair one user account.

After provision() the account exists, its home directory is owned by
user:primary-group, the standard dot-directories (700) and XDG folders
(755) exist, missing skeleton files have been copied without
overwriting anything, and root-owned entries directly under the home
directory belong to the user again. Running it twice yields the same
end state.
"""

from __future__ import annotations

import grp
import logging
import pwd
import shlex
from pathlib import Path
from typing import TYPE_CHECKING

from archforge.core.errors import InvalidInputError
from archforge.core.executor import Command
from archforge.core.paths import HostLayout
from archforge.core.report import RunReport
from archforge.models.account import DEFAULT_SHELL, AccountRequest, AccountSummary, validate_username
from archforge.models.catalog import COMMON_GROUPS, HELPER_GROUPS
from archforge.utils.shell import command_exists, is_executable

if TYPE_CHECKING:
    from archforge.core.executor import Executor
    from archforge.scanners.base import AccountDatabase

logger = logging.getLogger(__name__)

PRIVATE_DIRS = (".config", ".cache", ".local", ".local/share", ".local/state")
XDG_DIRS = ("Desktop", "Documents", "Downloads", "Music", "Pictures", "Videos", "Public", "Templates")


class AccountProvisioner:
    """Create or repair user accounts through an executor.

    Attributes:
        executor: Executor for every mutating action.
        accounts: Account database.
        layout: Host file layout (skeleton directory, default home root).
        report: Findings recorded during the run.

    Example:
        >>> provisioner = AccountProvisioner(get_executor(), SystemAccountDatabase())
        >>> provisioner.provision(AccountRequest("alice"))
    """

    def __init__(
        self,
        executor: Executor,
        accounts: AccountDatabase,
        layout: HostLayout | None = None,
        report: RunReport | None = None,
    ) -> None:
        self.executor = executor
        self.accounts = accounts
        self.layout = layout or HostLayout()
        self.report = report or RunReport()

    def existing_groups(self, candidates: tuple[str, ...] = COMMON_GROUPS) -> list[str]:
        """Filter candidate groups down to those present on the host."""
        return [g for g in candidates if self.accounts.group_exists(g)]

    def resolve_shell(self, shell: str) -> str:
        """Return shell if executable, else warn and fall back to bash."""
        if is_executable(shell):
            return shell
        self.report.warn("shell", f"Shell '{shell}' not found/executable. Falling back to {DEFAULT_SHELL}.")
        return DEFAULT_SHELL

    def provision(self, request: AccountRequest) -> AccountSummary:
        """Create the account or bring an existing one in line.

        Args:
            request: Desired account state.

        Returns:
            Summary of the resulting account.

        Raises:
            CommandError: If useradd, usermod or a directory step fails.
        """
        name = request.username
        shell = self.resolve_shell(request.shell)
        record = self.accounts.lookup(name)
        created = record is None

        if record is not None:
            home = request.home or record.home
        else:
            home = request.home or self.layout.resolve(f"/home/{name}")

        groups = self.existing_groups()
        csv = ",".join(groups)

        if created:
            self.report.info("account", f"Creating user '{name}' (locked password by default)")
            args: list[str | Path] = ["useradd", "-m", "-d", home, "-s", shell, "-U"]
            if csv:
                args += ["-G", csv]
            args += ["-k", self.layout.skel_dir, name]
            self.executor.run(Command.of(*args))
        else:
            self.report.info("account", f"User '{name}' already exists -> repairing/updating settings")
            self.executor.run(Command.of("usermod", "-s", shell, name))
            if request.home is not None:
                self.executor.run(Command.of("usermod", "-d", home, name))
            if csv:
                self.executor.run(Command.of("usermod", "-aG", csv, name))

        if request.with_password:
            self.report.info("password", f"Password state not forced. Set it with: passwd {name}")
        else:
            with self.report.best_effort("passwd -l"):
                self.executor.run(Command.of("passwd", "-l", name))
            self.report.info("password", "Password state: LOCKED (no password login).")

        self.ensure_home(name, home)
        return self.summarize(name, home, shell, created)

    def ensure_home(self, name: str, home: Path) -> None:
        """Create and repair the home directory layout for a user."""
        self.report.info("home", f"Ensuring {home} exists and ownership is correct")
        self.executor.make_dirs(home)

        group = self.accounts.primary_group(name) or name
        owner = f"{name}:{group}"

        self.executor.run(Command.of("chown", owner, home))
        with self.report.best_effort("home permissions"):
            self.executor.run(Command.of("chmod", "755", home))

        if self.layout.skel_dir.is_dir():
            with self.report.best_effort("skeleton copy"):
                self.executor.run(Command.of("cp", "-a", "-n", f"{self.layout.skel_dir}/.", f"{home}/"))

        self.executor.run(
            Command.of("install", "-d", "-o", name, "-g", group, "-m", "700", *(home / d for d in PRIVATE_DIRS))
        )
        self.executor.run(
            Command.of("install", "-d", "-o", name, "-g", group, "-m", "755", *(home / d for d in XDG_DIRS))
        )

        stray = root_owned_entries(home)
        if stray:
            with self.report.best_effort("root-owned files"):
                self.executor.run(Command.of("chown", "-h", owner, *stray))

        if command_exists("xdg-user-dirs-update"):
            script = f"HOME={shlex.quote(str(home))} xdg-user-dirs-update --force"
            with self.report.best_effort("xdg-user-dirs"):
                self.executor.run(Command.of("su", "-s", "/bin/sh", "-c", script, name))

    def summarize(self, name: str, home: Path, shell: str, created: bool) -> AccountSummary:
        """Read back the account state for display.

        Falls back to the requested values when the account does not
        exist (dry-run of a new account).
        """
        record = self.accounts.lookup(name)
        owner, mode = describe_path(home)
        return AccountSummary(
            username=name,
            created=created,
            home=record.home if record else home,
            shell=record.shell if record else shell,
            primary_group=self.accounts.primary_group(name) or name,
            groups=tuple(self.accounts.groups_of(name)),
            home_owner=owner,
            home_mode=mode,
            password_locked=self.accounts.password_locked(name) if record else False,
        )

    def add_common_groups(self, username: str) -> list[str]:
        """Add an existing user to the common desktop groups present on the host.

        Args:
            username: Existing account.

        Returns:
            Groups passed to usermod (empty if none exist).

        Raises:
            InvalidInputError: If the name is invalid or the user does not exist.
        """
        validate_username(username)
        if self.accounts.lookup(username) is None:
            msg = f"User '{username}' does not exist. Create it first: archforge user add {username}"
            raise InvalidInputError(msg)

        groups = self.existing_groups(HELPER_GROUPS)
        if not groups:
            self.report.info("groups", "No candidate groups exist on this system. Nothing to add.")
            return []

        csv = ",".join(groups)
        self.executor.run(Command.of("usermod", "-aG", csv, username))
        self.report.info("groups", f"Added '{username}' to groups: {csv}")
        return groups


def root_owned_entries(home: Path) -> list[Path]:
    """List entries directly under home that belong to root."""
    if not home.is_dir():
        return []
    return sorted(p for p in home.iterdir() if p.lstat().st_uid == 0)


def describe_path(path: Path) -> tuple[str, str]:
    """Return ("user:group", "755") for a path, or ("?", "?") if it is missing."""
    try:
        st = path.stat()
    except OSError:
        return "?", "?"
    try:
        user = pwd.getpwuid(st.st_uid).pw_name
    except KeyError:
        user = str(st.st_uid)
    try:
        group = grp.getgrgid(st.st_gid).gr_name
    except KeyError:
        group = str(st.st_gid)
    return f"{user}:{group}", format(st.st_mode & 0o777, "o")
