"""Unit tests for the install, wizard and repair commands."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from archforge.cli.main import app
from archforge.core.config import ArchforgeConfig
from archforge.core.errors import PreconditionError
from archforge.models.modules import Addon, Module
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def installer(tmp_path: Path) -> Iterator[MagicMock]:
    """Install command with host checks passing and the Installer mocked."""
    target = "archforge.cli.commands.install"
    with (
        patch(f"{target}.require_root"),
        patch(f"{target}.require_command"),
        patch(f"{target}.warn_if_not_arch"),
        patch(f"{target}.load_config", return_value=ArchforgeConfig(locale="de_DE.UTF-8")),
        patch(f"{target}.setup_run_log", return_value=tmp_path / "install.log"),
        patch(f"{target}.sudo_user", return_value="alice"),
        patch(f"{target}.Installer") as cls,
    ):
        cls.return_value.run.return_value = True
        yield cls


class TestInstall:
    def test_modular_flags(self, installer: MagicMock) -> None:
        result = runner.invoke(app, ["install", "--yes", "--with-kde", "--with-audio", "--no-base"])

        assert result.exit_code == 0
        options = installer.call_args.args[0]
        assert options.selection.modules == frozenset({Module.KDE, Module.AUDIO})
        assert options.assume_yes
        assert options.default_locale == "de_DE.UTF-8"
        assert options.invoking_user == "alice"
        assert installer.call_args.kwargs["log_path"].name == "install.log"

    def test_unknown_flag_warns_and_continues(self, installer: MagicMock) -> None:
        result = runner.invoke(app, ["install", "--yes", "--frobnicate"])

        assert result.exit_code == 0
        assert "Unknown option: --frobnicate" in result.output
        installer.return_value.run.assert_called_once()

    def test_dry_run_alias(self, installer: MagicMock) -> None:
        result = runner.invoke(app, ["install", "--dry", "--base-only"])

        assert result.exit_code == 0
        options = installer.call_args.args[0]
        assert options.dry_run
        assert options.selection.modules == frozenset({Module.BASE})

    def test_dry_run_takes_defaults(self, installer: MagicMock) -> None:
        """A dry run without --yes still answers every question with its default."""
        result = runner.invoke(app, ["install", "--dry-run"])

        assert result.exit_code == 0
        options = installer.call_args.args[0]
        prompter = installer.call_args.args[4]
        assert options.dry_run
        assert options.assume_yes
        assert prompter.assume_yes

    def test_live_run_prompts_without_yes(self, installer: MagicMock) -> None:
        assert runner.invoke(app, ["install"]).exit_code == 0
        assert not installer.call_args.args[4].assume_yes

    def test_with_tools(self, installer: MagicMock) -> None:
        result = runner.invoke(app, ["install", "--yes", "--with-tools", "--base-only"])

        assert result.exit_code == 0
        options = installer.call_args.args[0]
        assert options.selection.has(Addon.TOOLS)
        assert options.selection.modules == frozenset({Module.BASE})

    def test_declined(self, installer: MagicMock) -> None:
        installer.return_value.run.return_value = False
        assert runner.invoke(app, ["install"]).exit_code == 0

    def test_not_root(self, installer: MagicMock) -> None:
        with patch(
            "archforge.cli.commands.install.require_root",
            side_effect=PreconditionError("Run as root: sudo archforge install [flags]"),
        ):
            result = runner.invoke(app, ["install"])

        assert result.exit_code == 1
        assert "Run as root" in result.output
        installer.assert_not_called()

    def test_run_error(self, installer: MagicMock) -> None:
        installer.return_value.run.side_effect = PreconditionError("pacman -Syu failed")

        result = runner.invoke(app, ["install", "--yes"])

        assert result.exit_code == 1
        assert "pacman -Syu failed" in result.output


class TestWizard:
    def test_propagates_exit_code(self) -> None:
        with patch("archforge.cli.commands.wizard.run_wizard", return_value=3) as run:
            result = runner.invoke(app, ["wizard", "--yes", "--dry-run"])

        assert result.exit_code == 3
        prompter = run.call_args.args[0]
        assert prompter.assume_yes
        assert run.call_args.kwargs == {"dry_run": True}

    def test_success(self) -> None:
        with patch("archforge.cli.commands.wizard.run_wizard", return_value=0):
            assert runner.invoke(app, ["wizard"]).exit_code == 0


class TestRepair:
    @pytest.fixture
    def patcher(self, tmp_path: Path) -> Iterator[MagicMock]:
        target = "archforge.cli.commands.repair"
        with (
            patch(f"{target}.require_root"),
            patch(f"{target}.require_command"),
            patch(f"{target}.warn_if_not_arch"),
            patch(f"{target}.setup_run_log", return_value=tmp_path / "repair.log"),
            patch(f"{target}.sudo_user", return_value="alice"),
            patch(f"{target}.Patcher") as cls,
        ):
            yield cls

    def test_defaults_to_sudo_user(self, patcher: MagicMock) -> None:
        result = runner.invoke(app, ["repair", "--hostname", "archbox"])

        assert result.exit_code == 0
        options = patcher.call_args.args[0]
        assert options.user == "alice"
        assert options.hostname == "archbox"
        assert not options.reset_kde_config

    def test_explicit_user_and_unknown_flag(self, patcher: MagicMock) -> None:
        result = runner.invoke(app, ["repair", "-u", "bob", "--reset-kde-config", "--turbo"])

        assert result.exit_code == 0
        assert "Unknown option: --turbo" in result.output
        options = patcher.call_args.args[0]
        assert options.user == "bob"
        assert options.reset_kde_config
