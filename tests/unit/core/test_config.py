"""Unit tests for the defaults file."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from archforge.core.config import (
    ArchforgeConfig,
    ConfigError,
    ConfigParseError,
    VmConfig,
    load_config,
    save_config,
)


class TestModels:
    """Tests for the configuration models."""

    def test_defaults(self) -> None:
        config = ArchforgeConfig()
        assert config.locale == "en_US.UTF-8"
        assert config.timezone == "UTC"
        assert config.flatpak_apps == []
        assert config.vm.ram_mb == 4096
        assert config.vm.vnc_port == 5901
        assert config.vm.mount_tag == "toolset"

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValueError):
            ArchforgeConfig.model_validate({"locale": "C", "colour": "blue"})

    def test_vm_limits(self) -> None:
        with pytest.raises(ValueError):
            VmConfig(ram_mb=128)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "absent.toml") == ArchforgeConfig()

    def test_partial_file(self, tmp_path: Path) -> None:
        path = tmp_path / "defaults.toml"
        path.write_text('locale = "pl_PL.UTF-8"\n\n[vm]\ncpus = 2\n')

        config = load_config(path)

        assert config.locale == "pl_PL.UTF-8"
        assert config.timezone == "UTC"
        assert config.vm.cpus == 2
        assert config.vm.ram_mb == 4096

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "defaults.toml"
        path.write_text("locale = \n")

        with pytest.raises(ConfigParseError, match="Invalid TOML"):
            load_config(path)

    def test_schema_violation(self, tmp_path: Path) -> None:
        path = tmp_path / "defaults.toml"
        path.write_text("[vm]\nssh_port = 0\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_env_override(self, tmp_path: Path) -> None:
        """ARCHFORGE_CONFIG selects the file when no path is given."""
        path = tmp_path / "custom.toml"
        path.write_text('timezone = "Europe/Warsaw"\n')

        with patch.dict(os.environ, {"ARCHFORGE_CONFIG": str(path)}):
            config = load_config()

        assert config.timezone == "Europe/Warsaw"


class TestSaveConfig:
    """Tests for save_config()."""

    def test_round_trip(self, tmp_path: Path) -> None:
        config = ArchforgeConfig(
            timezone="Europe/Berlin",
            flatpak_apps=["com.github.tchx84.Flatseal"],
            vm=VmConfig(ram_mb=8192),
        )
        path = tmp_path / "sub" / "defaults.toml"

        saved = save_config(config, path)

        assert saved == path
        assert load_config(path) == config

    def test_only_changed_vm_values_written(self, tmp_path: Path) -> None:
        path = tmp_path / "defaults.toml"

        save_config(ArchforgeConfig(vm=VmConfig(cpus=8)), path)

        text = path.read_text()
        assert 'locale = "en_US.UTF-8"' in text
        assert "cpus = 8" in text
        assert "ram_mb" not in text
        assert "flatpak_apps" not in text
        assert list(tmp_path.glob("*.tmp")) == []
