"""Defaults configuration.

The optional defaults file is plain TOML made of ``key = value`` lines::

    locale = "pl_PL.UTF-8"
    timezone = "Europe/Warsaw"
    flatpak_apps = ["com.github.tchx84.Flatseal"]

    [vm]
    ram_mb = 8192

When the file is absent the built-in defaults apply. Command-line flags
always override values from the file.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from archforge.core.errors import ArchforgeError
from archforge.core.paths import get_default_config_path

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en_US.UTF-8"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_ISO_MIRROR = "https://geo.mirror.pkgbuild.com/iso/latest"


class VmConfig(BaseModel):
    """Settings for the QEMU test VM.

    Attributes:
        disk_size: Size of the base qcow2 image (qemu-img syntax).
        ram_mb: Guest memory in MiB.
        cpus: Guest vCPU count.
        vnc_bind: Address the VNC server listens on.
        vnc_port: VNC TCP port (display number is port - 5900).
        novnc_port: HTTP port of the noVNC/websockify bridge.
        ssh_port: Host port forwarded to guest port 22.
        mount_tag: 9p mount tag under which the project tree is shared.
        iso_mirror: Base URL holding the latest ISO and sha256sums.txt.
    """

    model_config = ConfigDict(extra="forbid")

    disk_size: str = "16G"
    ram_mb: Annotated[int, Field(ge=512)] = 4096
    cpus: Annotated[int, Field(ge=1)] = 4
    vnc_bind: str = "127.0.0.1"
    vnc_port: Annotated[int, Field(ge=5900, le=65535)] = 5901
    novnc_port: Annotated[int, Field(ge=1, le=65535)] = 6080
    ssh_port: Annotated[int, Field(ge=1, le=65535)] = 2222
    mount_tag: str = "toolset"
    iso_mirror: str = DEFAULT_ISO_MIRROR


class ArchforgeConfig(BaseModel):
    """Top-level defaults configuration.

    Attributes:
        locale: Default locale offered by the installer.
        timezone: Default time zone offered by the installer.
        flatpak_apps: Flathub application IDs installed when Flatpak is selected.
        vm: VM harness settings.
    """

    model_config = ConfigDict(extra="forbid")

    locale: Annotated[str, Field(min_length=1)] = DEFAULT_LOCALE
    timezone: Annotated[str, Field(min_length=1)] = DEFAULT_TIMEZONE
    flatpak_apps: list[str] = Field(default_factory=list)
    vm: VmConfig = Field(default_factory=VmConfig)


class ConfigError(ArchforgeError):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the defaults file cannot be parsed."""


def load_config(path: Path | None = None) -> ArchforgeConfig:
    """Load defaults from a TOML file.

    Args:
        path: Path to the defaults file. If None, uses the default location.

    Returns:
        Validated ArchforgeConfig. Built-in defaults if the file is absent.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file cannot be read or doesn't match the schema.
    """
    config_path = path or get_default_config_path()

    if not config_path.exists():
        logger.debug("No defaults file at %s, using built-in defaults", config_path)
        return ArchforgeConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    try:
        config = ArchforgeConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    logger.info("Loaded defaults from %s", config_path)
    return config


def save_config(config: ArchforgeConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The configuration to save.
        path: Destination path. If None, uses the default location.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_default_config_path()
    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(tmp_path, config_path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write {config_path}: {e}") from e

    return config_path


def _config_to_dict(config: ArchforgeConfig) -> dict[str, object]:
    """Convert configuration to a dictionary for TOML serialization.

    Locale and time zone are always written so the file documents them;
    other values only when they differ from the defaults.

    Args:
        config: The configuration to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    result: dict[str, object] = {"locale": config.locale, "timezone": config.timezone}

    if config.flatpak_apps:
        result["flatpak_apps"] = list(config.flatpak_apps)

    vm_changes = config.vm.model_dump(exclude_defaults=True)
    if vm_changes:
        result["vm"] = vm_changes

    return result
