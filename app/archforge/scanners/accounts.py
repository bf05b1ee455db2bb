"""User and group database backed by pwd, grp and passwd -S."""

import grp
import logging
import os
import pwd
import subprocess
from pathlib import Path

from archforge.models.account import UserRecord
from archforge.scanners.base import AccountDatabase
from archforge.utils.shell import run_command

logger = logging.getLogger(__name__)


class SystemAccountDatabase(AccountDatabase):
    """Account queries against the live system databases."""

    def lookup(self, name: str) -> UserRecord | None:
        """Return the passwd entry for a user, or None if absent."""
        try:
            entry = pwd.getpwnam(name)
        except KeyError:
            return None
        return UserRecord(
            name=entry.pw_name,
            uid=entry.pw_uid,
            gid=entry.pw_gid,
            home=Path(entry.pw_dir),
            shell=entry.pw_shell,
        )

    def group_exists(self, name: str) -> bool:
        """Check if a group exists."""
        try:
            grp.getgrnam(name)
        except KeyError:
            return False
        return True

    def primary_group(self, name: str) -> str | None:
        """Return the name of a user's primary group."""
        record = self.lookup(name)
        if record is None:
            return None
        try:
            return grp.getgrgid(record.gid).gr_name
        except KeyError:
            return str(record.gid)

    def groups_of(self, name: str) -> list[str]:
        """Return all group names a user belongs to, primary group first."""
        record = self.lookup(name)
        if record is None:
            return []

        names: list[str] = []
        for gid in [record.gid, *os.getgrouplist(name, record.gid)]:
            try:
                group_name = grp.getgrgid(gid).gr_name
            except KeyError:
                group_name = str(gid)
            if group_name not in names:
                names.append(group_name)
        return names

    def password_locked(self, name: str) -> bool:
        """Check the second field of ``passwd -S`` for "L"."""
        try:
            result = run_command(["passwd", "-S", name])
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("passwd -S %s failed: %s", name, e)
            return False
        fields = result.stdout.split()
        return result.success and len(fields) > 1 and fields[1] == "L"
