"""Unit tests for per-run log files."""

import io
import logging
import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from archforge.core.executor import Command, SubprocessExecutor
from archforge.core.logfile import configure_console_logging, log_file_name, setup_run_log
from archforge.core.paths import HostLayout


@pytest.fixture(autouse=True)
def _restore_handlers() -> Iterator[None]:
    """Remove handlers added to the archforge logger by a test."""
    root = logging.getLogger("archforge")
    before = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestLogFileName:
    def test_format(self) -> None:
        name = log_file_name("install", datetime(2026, 1, 2, 3, 4, 5))
        assert name == "archforge-install-20260102-030405.log"


class TestSetupRunLog:
    """Tests for setup_run_log()."""

    def test_writes_under_layout_log_dir(self, layout: HostLayout) -> None:
        path = setup_run_log("repair", layout)

        logging.getLogger("archforge.test").warning("hello from test")

        assert path.parent == layout.log_dir
        assert path.name.startswith("archforge-repair-")
        assert oct(path.stat().st_mode & 0o777) == oct(0o600)
        assert "hello from test" in path.read_text()

    def test_command_output_reaches_log(self, layout: HostLayout) -> None:
        """Output of executed commands is copied into the run log."""
        path = setup_run_log("install", layout)
        proc = MagicMock()
        proc.stdout = io.StringIO("warning: vim-9.1-1 is up to date -- skipping\n")
        proc.wait.return_value = 0

        with patch("archforge.core.executor.subprocess.Popen", return_value=proc):
            SubprocessExecutor().run(Command.of("pacman", "-S", "--needed", "vim"))

        text = path.read_text()
        assert "RUN pacman -S --needed vim" in text
        assert "[pacman] warning: vim-9.1-1 is up to date -- skipping" in text

    def test_falls_back_to_state_dir(self, tmp_path: Path, layout: HostLayout) -> None:
        """An unwritable log directory falls back to the state directory."""
        layout.log_dir.parent.mkdir(parents=True, exist_ok=True)
        layout.log_dir.write_text("not a directory")

        with patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path / "state")}):
            path = setup_run_log("install", layout)

        assert path.parent == tmp_path / "state" / "archforge"
        assert path.exists()


class TestConsoleLogging:
    def test_verbose_adds_single_handler(self) -> None:
        root = logging.getLogger("archforge")
        count = len(root.handlers)

        configure_console_logging(verbose=True)
        configure_console_logging(verbose=True)

        assert len(root.handlers) == count + 1

    def test_quiet_by_default(self) -> None:
        root = logging.getLogger("archforge")
        count = len(root.handlers)
        configure_console_logging(verbose=False)
        assert len(root.handlers) == count
