"""Unit tests for the system account database."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from archforge.scanners.accounts import SystemAccountDatabase
from archforge.utils.shell import CommandResult

ALICE = SimpleNamespace(pw_name="alice", pw_uid=1000, pw_gid=1000, pw_dir="/home/alice", pw_shell="/bin/zsh")


def _getgrgid(gid: int) -> SimpleNamespace:
    names = {1000: "alice", 10: "wheel", 998: "audio"}
    if gid not in names:
        raise KeyError(gid)
    return SimpleNamespace(gr_name=names[gid])


class TestSystemAccountDatabase:
    """Tests for SystemAccountDatabase."""

    @patch("archforge.scanners.accounts.pwd.getpwnam", return_value=ALICE)
    def test_lookup(self, _mock: MagicMock) -> None:
        record = SystemAccountDatabase().lookup("alice")
        assert record is not None
        assert record.home == Path("/home/alice")
        assert record.shell == "/bin/zsh"

    @patch("archforge.scanners.accounts.pwd.getpwnam", side_effect=KeyError("nobody"))
    def test_lookup_missing(self, _mock: MagicMock) -> None:
        db = SystemAccountDatabase()
        assert db.lookup("ghost") is None
        assert not db.user_exists("ghost")
        assert db.groups_of("ghost") == []

    @patch("archforge.scanners.accounts.grp.getgrnam", side_effect=KeyError("docker"))
    def test_group_missing(self, _mock: MagicMock) -> None:
        assert not SystemAccountDatabase().group_exists("docker")

    @patch("archforge.scanners.accounts.grp.getgrgid", side_effect=_getgrgid)
    @patch("archforge.scanners.accounts.os.getgrouplist", return_value=[1000, 10, 998, 4242])
    @patch("archforge.scanners.accounts.pwd.getpwnam", return_value=ALICE)
    def test_groups_of(self, _pw: MagicMock, _gl: MagicMock, _gr: MagicMock) -> None:
        """Primary group first, duplicates dropped, unknown gids kept numeric."""
        assert SystemAccountDatabase().groups_of("alice") == ["alice", "wheel", "audio", "4242"]

    @patch("archforge.scanners.accounts.run_command")
    def test_password_locked(self, mock_run: MagicMock) -> None:
        mock_run.return_value = CommandResult(stdout="alice L 01/01/2026 0 99999 7 -1\n", stderr="", returncode=0)
        assert SystemAccountDatabase().password_locked("alice")

    @patch("archforge.scanners.accounts.run_command")
    def test_password_usable(self, mock_run: MagicMock) -> None:
        mock_run.return_value = CommandResult(stdout="alice P 01/01/2026 0 99999 7 -1\n", stderr="", returncode=0)
        assert not SystemAccountDatabase().password_locked("alice")
