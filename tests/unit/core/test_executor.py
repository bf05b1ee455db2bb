"""Unit tests for core/executor.py.

Tests command rendering, real execution dispatch and dry-run output.
"""

import io
import logging
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from archforge.core.executor import (
    Command,
    CommandError,
    DryRunExecutor,
    SubprocessExecutor,
    get_executor,
)


class TestCommand:
    """Tests for the Command value type."""

    def test_of_converts_paths(self) -> None:
        """Command.of turns path arguments into strings."""
        cmd = Command.of("chown", "alice:alice", Path("/home/alice"))
        assert cmd.argv == ("chown", "alice:alice", "/home/alice")
        assert cmd.program == "chown"

    def test_empty_argv_rejected(self) -> None:
        """A command needs at least a program name."""
        with pytest.raises(ValueError, match="cannot be empty"):
            Command(())

    def test_str_quotes_arguments(self) -> None:
        """Rendering quotes arguments containing spaces."""
        cmd = Command.of("su", "-c", "HOME=/home/a b xdg-user-dirs-update", "alice")
        assert str(cmd) == "su -c 'HOME=/home/a b xdg-user-dirs-update' alice"

    def test_str_shows_env_and_redirect(self) -> None:
        """Environment additions prefix and stdout redirect suffix the rendering."""
        cmd = Command(("journalctl", "-b"), env={"LC_ALL": "C"}, stdout=Path("/tmp/out.txt"))
        assert str(cmd) == "LC_ALL=C journalctl -b > /tmp/out.txt"


def _popen(returncode: int, output: str = "") -> MagicMock:
    """Stand-in for a started process with merged output."""
    proc = MagicMock()
    proc.stdout = io.StringIO(output)
    proc.wait.return_value = returncode
    return proc


class TestSubprocessExecutor:
    """Tests for real execution."""

    @patch("archforge.core.executor.subprocess.Popen")
    def test_run_success(self, mock_popen: MagicMock) -> None:
        """Successful commands return their exit status."""
        mock_popen.return_value = _popen(0)

        result = SubprocessExecutor().run(Command.of("true"))

        assert result.success
        assert mock_popen.call_args.args[0] == ["true"]
        assert mock_popen.call_args.kwargs["stderr"] == subprocess.STDOUT

    @patch("archforge.core.executor.subprocess.Popen")
    def test_run_failure_raises_when_checked(self, mock_popen: MagicMock) -> None:
        """Non-zero exit raises CommandError with the status."""
        mock_popen.return_value = _popen(3)

        with pytest.raises(CommandError) as exc_info:
            SubprocessExecutor().run(Command.of("false"))

        assert exc_info.value.returncode == 3
        assert "exit status 3" in str(exc_info.value)

    @patch("archforge.core.executor.subprocess.Popen")
    def test_run_failure_unchecked(self, mock_popen: MagicMock) -> None:
        """check=False returns the failing status instead of raising."""
        mock_popen.return_value = _popen(1)

        result = SubprocessExecutor().run(Command.of("false"), check=False)

        assert result.returncode == 1

    @patch("archforge.core.executor.subprocess.Popen")
    def test_missing_program(self, mock_popen: MagicMock) -> None:
        """A program that cannot start raises CommandError without a status."""
        mock_popen.side_effect = FileNotFoundError("no such file")

        with pytest.raises(CommandError) as exc_info:
            SubprocessExecutor().run(Command.of("missing-tool"))

        assert exc_info.value.returncode is None

    @patch("archforge.core.executor.subprocess.Popen")
    def test_output_echoed_and_logged(
        self, mock_popen: MagicMock, capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture
    ) -> None:
        """Command output reaches the terminal, the result and the archforge log."""
        mock_popen.return_value = _popen(0, "resolving dependencies...\nerror: target not found: ghost\n")

        with caplog.at_level(logging.DEBUG, logger="archforge.output"):
            result = SubprocessExecutor().run(Command.of("pacman", "-S", "ghost"))

        assert "error: target not found: ghost" in capsys.readouterr().out
        assert result.stdout.splitlines() == ["resolving dependencies...", "error: target not found: ghost"]
        logged = [r.getMessage() for r in caplog.records if r.name == "archforge.output"]
        assert logged == ["[pacman] resolving dependencies...", "[pacman] error: target not found: ghost"]

    def test_real_process_output_captured(self) -> None:
        result = SubprocessExecutor().run(Command.of("sh", "-c", "echo out; echo err >&2; exit 2"), check=False)

        assert result.returncode == 2
        assert sorted(result.stdout.split()) == ["err", "out"]

    @patch("archforge.core.executor.subprocess.run")
    def test_stdout_redirect(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Output goes to the requested file, with stderr merged."""
        mock_run.return_value = MagicMock(returncode=0)
        target = tmp_path / "diag" / "out.txt"

        SubprocessExecutor().run(Command(("journalctl", "-b"), stdout=target))

        assert target.parent.is_dir()
        assert mock_run.call_args.kwargs["stderr"] == subprocess.STDOUT

    def test_file_operations(self, tmp_path: Path) -> None:
        """Write, append, copy and remove act on the filesystem."""
        executor = SubprocessExecutor()
        path = tmp_path / "etc" / "locale.conf"

        executor.write_file(path, "LANG=C\n", mode=0o600)
        executor.append_file(path, "LC_TIME=C\n")
        executor.copy_file(path, tmp_path / "backup")
        executor.remove_file(path)

        assert not path.exists()
        assert (tmp_path / "backup").read_text() == "LANG=C\nLC_TIME=C\n"


class TestDryRunExecutor:
    """Tests for simulated execution."""

    def test_run_prints_prefix(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Dry-run commands are printed with a literal [DRY-RUN] prefix."""
        result = DryRunExecutor().run(Command.of("pacman", "-S", "--needed", "vim"))

        assert result.success
        assert "[DRY-RUN] pacman -S --needed vim" in capsys.readouterr().out

    def test_write_file_touches_nothing(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Dry-run writes print the content instead of creating the file."""
        path = tmp_path / "pacman.conf"

        DryRunExecutor().write_file(path, "[multilib]\nInclude = /etc/pacman.d/mirrorlist\n")

        out = capsys.readouterr().out
        assert not path.exists()
        assert f"[DRY-RUN] write {path}:" in out
        assert "[multilib]" in out

    def test_make_dirs_touches_nothing(self, tmp_path: Path) -> None:
        """Dry-run directory creation leaves the filesystem alone."""
        DryRunExecutor().make_dirs(tmp_path / "new")
        assert not (tmp_path / "new").exists()


class TestGetExecutor:
    """Tests for the executor factory."""

    def test_dry_run(self) -> None:
        assert isinstance(get_executor(True), DryRunExecutor)
        assert get_executor(True).dry_run

    def test_real(self) -> None:
        assert isinstance(get_executor(), SubprocessExecutor)
        assert not get_executor().dry_run
