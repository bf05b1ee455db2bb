"""Unit tests for precondition checks."""

from unittest.mock import patch

import pytest
from archforge.core.errors import PreconditionError
from archforge.core.paths import HostLayout
from archforge.core.privileges import is_arch_linux, require_command, require_root, warn_if_not_arch


class TestRequireRoot:
    @patch("archforge.core.privileges.os.geteuid", return_value=1000)
    def test_non_root_rejected(self, _mock: object) -> None:
        with pytest.raises(PreconditionError, match="Run as root: sudo archforge install"):
            require_root("sudo archforge install")

    @patch("archforge.core.privileges.os.geteuid", return_value=0)
    def test_root_accepted(self, _mock: object) -> None:
        require_root()


class TestArchDetection:
    def test_arch_release_present(self, layout: HostLayout) -> None:
        layout.arch_release.parent.mkdir(parents=True)
        layout.arch_release.write_text("")
        assert is_arch_linux(layout)

    def test_warns_on_other_hosts(self, layout: HostLayout, capsys: pytest.CaptureFixture[str]) -> None:
        warn_if_not_arch(layout)
        assert "targets Arch Linux" in capsys.readouterr().err


class TestRequireCommand:
    @patch("archforge.core.privileges.command_exists", return_value=False)
    def test_missing(self, _mock: object) -> None:
        with pytest.raises(PreconditionError, match="pacman is required"):
            require_command("pacman")

    @patch("archforge.core.privileges.command_exists", return_value=True)
    def test_present(self, _mock: object) -> None:
        require_command("pacman")
