"""Path management for archforge.

Two kinds of paths live here:

- HostLayout: the system files the installer and repair tool read and
  patch (pacman.conf, boot configuration, locale data, ...). All of them
  resolve under a configurable root so the same code runs against a
  temporary directory in tests.
- XDG-style per-user locations for the user theme and state, following
  the XDG Base Directory Specification.
"""

import os
from dataclasses import dataclass
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "archforge"

# System-wide defaults file
SYSTEM_CONFIG_PATH = Path("/etc/archforge/defaults.toml")


@dataclass(frozen=True, slots=True)
class HostLayout:
    """Locations of system files, relative to a filesystem root.

    Attributes:
        root: Filesystem root. "/" on a live system.
    """

    root: Path = Path("/")

    def _p(self, relative: str) -> Path:
        return self.root / relative

    # -- distribution / package manager --------------------------------------
    @property
    def arch_release(self) -> Path:
        return self._p("etc/arch-release")

    @property
    def pacman_conf(self) -> Path:
        return self._p("etc/pacman.conf")

    # -- locale / time ---------------------------------------------------------
    @property
    def locale_gen(self) -> Path:
        return self._p("etc/locale.gen")

    @property
    def locale_conf(self) -> Path:
        return self._p("etc/locale.conf")

    @property
    def zoneinfo(self) -> Path:
        return self._p("usr/share/zoneinfo")

    @property
    def localtime(self) -> Path:
        return self._p("etc/localtime")

    @property
    def hostname(self) -> Path:
        return self._p("etc/hostname")

    @property
    def machine_id(self) -> Path:
        return self._p("etc/machine-id")

    @property
    def tmp_dir(self) -> Path:
        return self._p("tmp")

    # -- boot ------------------------------------------------------------------
    @property
    def mkinitcpio_conf(self) -> Path:
        return self._p("etc/mkinitcpio.conf")

    @property
    def grub_default(self) -> Path:
        return self._p("etc/default/grub")

    @property
    def grub_dirs(self) -> tuple[Path, ...]:
        """Candidate GRUB output directories, in preference order."""
        return (self._p("boot/grub"), self._p("boot/grub2"))

    @property
    def loader_entry_dirs(self) -> tuple[Path, ...]:
        """systemd-boot style loader entry directories."""
        return (self._p("boot/loader/entries"), self._p("efi/loader/entries"))

    @property
    def modprobe_dir(self) -> Path:
        return self._p("etc/modprobe.d")

    # -- display manager / sessions -------------------------------------------
    @property
    def sddm_conf_dir(self) -> Path:
        return self._p("etc/sddm.conf.d")

    @property
    def sddm_state_dir(self) -> Path:
        return self._p("var/lib/sddm")

    @property
    def sddm_state_file(self) -> Path:
        return self.sddm_state_dir / "state.conf"

    @property
    def xsessions_dir(self) -> Path:
        return self._p("usr/share/xsessions")

    @property
    def wayland_sessions_dir(self) -> Path:
        return self._p("usr/share/wayland-sessions")

    # -- services --------------------------------------------------------------
    @property
    def unit_dirs(self) -> tuple[Path, ...]:
        return (self._p("usr/lib/systemd/system"), self._p("etc/systemd/system"))

    # -- accounts --------------------------------------------------------------
    @property
    def skel_dir(self) -> Path:
        return self._p("etc/skel")

    # -- logs / diagnostics ----------------------------------------------------
    @property
    def log_dir(self) -> Path:
        return self._p("var/log")

    @property
    def diagnostics_dir(self) -> Path:
        return self._p("root/patch-diagnostics")

    def resolve(self, absolute: str | Path) -> Path:
        """Map an absolute system path into this layout.

        Args:
            absolute: Path as seen on a live system, e.g. "/etc/passwd".

        Returns:
            The same path under this layout's root.
        """
        return self.root / str(absolute).lstrip("/")


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the per-user configuration directory path.

    Returns:
        Path to ~/.config/archforge/ (or XDG_CONFIG_HOME/archforge/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the per-user state directory path.

    Used as the fallback location for run logs when /var/log is not
    writable.

    Returns:
        Path to ~/.local/state/archforge/ (or XDG_STATE_HOME/archforge/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_default_config_path() -> Path:
    """Get the defaults file path.

    The ARCHFORGE_CONFIG environment variable takes precedence over the
    system-wide /etc/archforge/defaults.toml.

    Returns:
        Path to the defaults TOML file (which may not exist).
    """
    override = os.environ.get("ARCHFORGE_CONFIG")
    if override:
        return Path(override)
    return SYSTEM_CONFIG_PATH


def get_vm_dir() -> Path:
    """Get the VM artifact directory.

    ARCHFORGE_VM_DIR overrides the default ./vm under the current
    working directory (the project checkout shared with the guest).

    Returns:
        Path to the VM artifact directory.
    """
    override = os.environ.get("ARCHFORGE_VM_DIR")
    if override:
        return Path(override)
    return Path.cwd() / "vm"

