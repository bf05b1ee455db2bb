"""Repair tool for a broken post-install state.

Targets the usual causes of an SDDM/Plasma login loop on Intel+NVIDIA
machines: a missing multilib repository, pacman provider prompts that
stall a non-interactive run, the jack2/pipewire-jack conflict, a
missing X11 fallback session, bad ownership and stale auth files in the
user's home, competing display managers, and NVIDIA KMS not enabled for
Wayland.

Steps run in a fixed order and each one is idempotent.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from archforge.core import bootcfg
from archforge.core.errors import ArchforgeError
from archforge.core.executor import Command
from archforge.core.pacman_conf import ensure_multilib
from archforge.core.paths import HostLayout
from archforge.core.report import RunReport
from archforge.models import catalog
from archforge.models.account import DEFAULT_SHELL
from archforge.operators.pacman import PacmanOperator
from archforge.operators.systemd import ServiceOperator
from archforge.repair.diagnostics import DiagnosticsCollector
from archforge.utils.formatting import console, print_section
from archforge.utils.shell import command_exists, is_executable, run_command

if TYPE_CHECKING:
    from archforge.core.executor import Executor
    from archforge.models.account import UserRecord
    from archforge.scanners.base import AccountDatabase, PackageSource, ServiceManager

logger = logging.getLogger(__name__)

SDDM_SAFE_CONF = "10-safe-display.conf"
SDDM_SAFE_TEXT = "[General]\nDisplayServer=x11\n"
PLASMA_X11_SESSION = "/usr/share/xsessions/plasma.desktop"

# Per-user directories whose wrong ownership commonly causes a login loop
SESSION_PATHS = (".config", ".cache", ".local")

# Leftovers from a failed session; the next login recreates them.
STALE_SESSION_FILES = (".Xauthority", ".ICEauthority", ".xsession-errors", ".xsession-errors.old")

KDE_CONFIG_FILES = (
    ".config/kdeglobals",
    ".config/plasmarc",
    ".config/kwinrc",
    ".config/ksmserverrc",
    ".config/kscreenlockerrc",
    ".config/plasmashellrc",
    ".config/plasma-org.kde.plasma.desktop-appletsrc",
    ".local/share/kscreen",
)
KDE_CACHE_GLOBS = ("ksycoca*", "plasmashell*")

_GPU_LINE = re.compile(r"vga|3d|display", re.IGNORECASE)

# Checked in order against every display controller line; first match wins.
_GPU_VENDORS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("amd", re.compile(r"AMD|Radeon", re.IGNORECASE)),
    ("intel", re.compile(r"Intel", re.IGNORECASE)),
    ("nvidia", re.compile(r"NVIDIA", re.IGNORECASE)),
)


def detect_gpu_vendor(lspci_output: str) -> str | None:
    """Classify the host GPU from ``lspci`` output.

    Only VGA, 3D and display controller lines are considered.

    Args:
        lspci_output: Standard output of ``lspci``.

    Returns:
        "amd", "intel" or "nvidia", or None if no display controller
        matches a known vendor.
    """
    controllers = "\n".join(line for line in lspci_output.splitlines() if _GPU_LINE.search(line))
    for vendor, pattern in _GPU_VENDORS:
        if pattern.search(controllers):
            return vendor
    return None


@dataclass(frozen=True, slots=True)
class RepairOptions:
    """Options for one repair run.

    Attributes:
        user: Account whose session files are fixed, or None.
        hostname: New hostname, or None to leave it alone.
        reset_kde_config: Move the user's Plasma config aside.
    """

    user: str | None = None
    hostname: str | None = None
    reset_kde_config: bool = False


class Patcher:
    """Apply the repair sequence.

    Attributes:
        options: What to repair.
        executor: Executor for every mutating action.
        source: Package source.
        services: Unit lookup.
        accounts: Account database.
        layout: Host file layout.
        report: Findings recorded during the run.
        driver: NVIDIA driver package chosen by the run.
        gpu_vendor: Vendor detected from lspci, if any.
        display_manager: Display manager unit enabled by the run.
        audio_packages: PipeWire packages requested by the run.
    """

    def __init__(
        self,
        options: RepairOptions,
        executor: Executor,
        source: PackageSource,
        services: ServiceManager,
        accounts: AccountDatabase,
        layout: HostLayout | None = None,
        report: RunReport | None = None,
        log_path: Path | None = None,
    ) -> None:
        self.options = options
        self.executor = executor
        self.source = source
        self.services = services
        self.accounts = accounts
        self.layout = layout or HostLayout()
        self.report = report or RunReport()
        self.log_path = log_path
        self.driver: str | None = None
        self.gpu_vendor: str | None = None
        self.display_manager: str | None = None
        self.audio_packages: list[str] = []
        self._packages = PacmanOperator(executor, source)
        self._service_operator = ServiceOperator(executor, services)

    def run(self) -> RunReport:
        """Run every repair step in order.

        Returns:
            The run report.

        Raises:
            ArchforgeError: On any fatal failure, after recording it as a
                FATAL finding.
        """
        try:
            self._run_steps()
        except ArchforgeError as e:
            self.report.fatal("repair", str(e))
            raise
        return self.report

    def _run_steps(self) -> None:
        user = self.options.user
        self.report.info(
            "repair",
            f"Patch start (user={user or '<none>'}, hostname={self.options.hostname or '<none>'})",
        )

        self.check_base_sanity()
        ensure_multilib(self.executor, self.layout, self.report)
        self._packages.refresh()

        if self.options.hostname:
            self.set_hostname(self.options.hostname)
        else:
            self.report.info("hostname", "Hostname not provided; skipping hostname change.")
        self.ensure_hostname_command()

        self.preseed_providers()
        self.install_audio_stack()
        self.install_login_graphics_stack()
        self.install_gpu_userspace()

        record = self._target_record()
        if record is not None:
            if self.options.reset_kde_config:
                self.reset_kde_config(record)
            self.fix_user(record)
            self.rebuild_kde_cache(record)

        self.configure_sddm(record)
        self.configure_nvidia_wayland()
        self.rebuild_boot_artifacts()
        self.enable_services()
        DiagnosticsCollector(self.executor, self.layout, self.report).collect()

        self.print_summary()

    def _target_record(self) -> UserRecord | None:
        user = self.options.user
        if not user:
            self.report.warn("user", "Target user not provided; skipping user shell/ownership fixes.")
            return None
        record = self.accounts.lookup(user)
        if record is None:
            self.report.warn("user", f"User '{user}' not found. Skipping home ownership/shell fixes.")
        return record

    # -- host ------------------------------------------------------------------

    def check_base_sanity(self) -> None:
        """Restore sticky /tmp permissions and create a missing machine ID."""
        with self.report.best_effort("tmp permissions"):
            self.executor.run(Command.of("chmod", "1777", self.layout.tmp_dir))

        machine_id = self.layout.machine_id
        if machine_id.is_file() and machine_id.stat().st_size > 0:
            return
        self.report.info("sanity", f"{machine_id} is missing or empty; generating a machine ID.")
        with self.report.best_effort("machine-id"):
            self.executor.run(Command.of("systemd-machine-id-setup"))

    def set_hostname(self, hostname: str) -> None:
        """Set the hostname with hostnamectl, or write /etc/hostname."""
        self.report.info("hostname", f"Setting hostname to: {hostname}")
        if command_exists("hostnamectl"):
            self.executor.run(Command.of("hostnamectl", "set-hostname", hostname))
        else:
            self.report.warn("hostname", "hostnamectl not found; writing /etc/hostname directly")
            self.executor.write_file(self.layout.hostname, f"{hostname}\n")

    def ensure_hostname_command(self) -> None:
        """Install inetutils when the hostname command is missing."""
        if command_exists("hostname"):
            self.report.info("hostname", "'hostname' command already available.")
            return
        self.report.info("hostname", "Installing inetutils to provide the 'hostname' command.")
        self._packages.install([catalog.INETUTILS])

    # -- packages --------------------------------------------------------------

    def preseed_providers(self) -> None:
        """Install packages that would otherwise trigger provider prompts."""
        self.report.info("packages", "Pre-installing provider packages to avoid pacman prompts...")
        self._packages.install(list(catalog.PROVIDER_PRESEED.packages))

    def install_audio_stack(self) -> list[str]:
        """Install PipeWire without forcing a jack2 -> pipewire-jack swap.

        If jack2 is already installed it is kept and pipewire-jack is left
        out, since replacing it would need an interactive pacman answer.

        Returns:
            The package list passed to pacman.
        """
        self.report.info("packages", "Handling JACK provider conflict (jack2 vs pipewire-jack)...")
        if self.source.is_installed(catalog.LEGACY_JACK):
            self.report.warn("audio", "jack2 is already installed. Keeping it for now.")
            self.report.warn("audio", "Skipping pipewire-jack to avoid a pacman conflict prompt.")
            packages = list(catalog.PIPEWIRE_STACK.packages)
        else:
            packages = list(catalog.AUDIO.packages)

        self._packages.install(packages)
        self.audio_packages = packages
        return packages

    def detect_nvidia_driver(self) -> str:
        """Pick the first NVIDIA driver package the repositories offer."""
        preferred, fallback = catalog.NVIDIA_DRIVERS
        return preferred if self.source.is_available(preferred) else fallback

    def install_login_graphics_stack(self) -> None:
        """Install or repair the display, session and graphics packages."""
        self.driver = self.detect_nvidia_driver()
        self.report.info(
            "packages",
            f"Installing/repairing KDE+SDDM+graphics packages (NVIDIA package: {self.driver})...",
        )
        group = catalog.with_driver(catalog.LOGIN_GRAPHICS_STACK, self.driver)
        self._packages.install(list(group.packages))

    def install_gpu_userspace(self) -> str | None:
        """Install the Vulkan/VA-API userspace for the GPU that lspci reports.

        For NVIDIA, also warn when no kernel driver package is installed.
        Nothing here aborts the run.

        Returns:
            The detected vendor, or None.
        """
        try:
            result = run_command(["lspci"])
        except (OSError, subprocess.TimeoutExpired) as e:
            self.report.warn("gpu", f"lspci unavailable; skipping GPU detection: {e}")
            return None

        vendor = detect_gpu_vendor(result.stdout)
        self.gpu_vendor = vendor
        if vendor is None:
            self.report.info("gpu", "No known GPU vendor in lspci output; skipping GPU userspace.")
            return None

        self.report.info("gpu", f"Detected GPU vendor: {vendor}")
        with self.report.best_effort("gpu packages"):
            self._packages.install_group(catalog.GPU_VENDOR_PACKAGES[vendor], self.report)

        if vendor == "nvidia" and not any(self.source.is_installed(p) for p in catalog.NVIDIA_KERNEL_DRIVERS):
            self.report.warn(
                "gpu",
                "NVIDIA GPU detected but no kernel driver (nvidia / nvidia-open / nvidia-dkms) is installed. "
                "Install the driver matching your kernel.",
            )
        return vendor

    # -- user ------------------------------------------------------------------

    def _owner(self, record: UserRecord) -> str:
        group = self.accounts.primary_group(record.name) or record.name
        return f"{record.name}:{group}"

    def fix_user(self, record: UserRecord) -> None:
        """Repair the user's shell and session files."""
        self.report.info("user", f"User: {record.name}, home: {record.home}, shell: {record.shell}")

        if not is_executable(record.shell):
            self.report.warn("user", f"User shell is invalid: {record.shell} -> switching to {DEFAULT_SHELL}")
            self.executor.run(Command.of("usermod", "-s", DEFAULT_SHELL, record.name))

        home = record.home
        if not home.is_dir():
            self.report.warn("user", f"Home directory does not exist: {home}")
            return

        owner = self._owner(record)
        self.report.info("user", "Fixing ownership for common user login/session files...")
        for relative in SESSION_PATHS:
            path = home / relative
            if path.exists() or path.is_symlink():
                self.executor.run(Command.of("chown", "-R", owner, path))

        for relative in STALE_SESSION_FILES:
            path = home / relative
            if path.exists() or path.is_symlink():
                with self.report.best_effort(f"remove {relative}"):
                    self.executor.remove_file(path)

        with self.report.best_effort("home ownership"):
            self.executor.run(Command.of("chown", owner, home))
        with self.report.best_effort("home permissions"):
            self.executor.run(Command.of("chmod", "700", home))

    def reset_kde_config(self, record: UserRecord) -> Path | None:
        """Move the user's Plasma config and caches into a backup directory.

        Returns:
            The backup directory, or None if the home directory is missing.
        """
        home = record.home
        if not home.is_dir():
            self.report.warn("kde-reset", f"Home directory does not exist: {home}")
            return None

        owner = self._owner(record)
        user, group = owner.split(":", 1)
        backup = home / f"kde-reset-{datetime.now():%Y%m%d-%H%M%S}"
        self.report.info("kde-reset", f"Backing up KDE config to {backup}")
        self.executor.run(Command.of("install", "-d", "-o", user, "-g", group, "-m", "700", backup))

        candidates = [home / relative for relative in KDE_CONFIG_FILES]
        for pattern in KDE_CACHE_GLOBS:
            candidates.extend(sorted((home / ".cache").glob(pattern)))

        for path in candidates:
            if path.exists() or path.is_symlink():
                self.executor.run(Command.of("mv", path, f"{backup}/"))

        self.executor.run(Command.of("chown", "-R", owner, backup))
        return backup

    def rebuild_kde_cache(self, record: UserRecord) -> None:
        """Rebuild the user's KDE service cache as that user, best effort."""
        if not command_exists("kbuildsycoca6"):
            return
        script = f"HOME={shlex.quote(str(record.home))} kbuildsycoca6 --noincremental"
        self.report.info("user", "Rebuilding the KDE service cache (kbuildsycoca6)...")
        with self.report.best_effort("kbuildsycoca6"):
            self.executor.run(Command.of("su", "-s", "/bin/sh", "-c", script, record.name))

    # -- display manager -------------------------------------------------------

    def configure_sddm(self, record: UserRecord | None) -> None:
        """Force an X11 greeter and point the last session at Plasma (X11)."""
        self.report.info("sddm", "Configuring SDDM for a safer first login (X11 greeter).")
        self.executor.make_dirs(self.layout.sddm_conf_dir)
        self.executor.write_file(self.layout.sddm_conf_dir / SDDM_SAFE_CONF, SDDM_SAFE_TEXT)

        session = self.layout.resolve(PLASMA_X11_SESSION)
        if record is None or not session.exists():
            return

        state = f"[Last]\nUser={record.name}\nSession={PLASMA_X11_SESSION}\n"
        self.executor.make_dirs(self.layout.sddm_state_dir, mode=0o755)
        self.executor.write_file(self.layout.sddm_state_file, state, mode=0o644)
        with self.report.best_effort("sddm state ownership"):
            self.executor.run(Command.of("chown", "sddm:sddm", self.layout.sddm_state_file))

    # -- NVIDIA / boot ---------------------------------------------------------

    def configure_nvidia_wayland(self) -> None:
        """Enable nvidia_drm modeset in modprobe.d and every boot config found."""
        self.report.info("nvidia", "Applying NVIDIA KMS settings for Wayland compatibility...")
        self.executor.make_dirs(self.layout.modprobe_dir)
        self.executor.write_file(
            self.layout.modprobe_dir / bootcfg.MODPROBE_FILE, bootcfg.MODPROBE_OPTIONS
        )

        targets: list[tuple[Path, str]] = []
        if self.layout.mkinitcpio_conf.is_file():
            targets.append((self.layout.mkinitcpio_conf, "mkinitcpio"))
        if self.layout.grub_default.is_file():
            targets.append((self.layout.grub_default, "grub"))
        targets += [(entry, "loader") for entry in bootcfg.loader_entries(self.layout.loader_entry_dirs)]

        transforms = {
            "mkinitcpio": bootcfg.patch_mkinitcpio_modules,
            "grub": bootcfg.patch_grub_cmdline,
            "loader": bootcfg.patch_loader_entry,
        }
        for path, kind in targets:
            if bootcfg.patch_file(path, transforms[kind], self.executor):
                self.report.info("nvidia", f"Patched {path}")
            else:
                self.report.info("nvidia", f"NVIDIA setting already present in {path}")

    def rebuild_boot_artifacts(self) -> None:
        """Rebuild the initramfs and, when GRUB is in use, grub.cfg."""
        self.report.info("boot", "Rebuilding initramfs (mkinitcpio -P)...")
        self.executor.run(Command.of("mkinitcpio", "-P"))

        if not command_exists("grub-mkconfig") or not self.layout.grub_default.is_file():
            return

        for directory in self.layout.grub_dirs:
            if directory.is_dir():
                output = directory / "grub.cfg"
                self.report.info("boot", f"Regenerating GRUB config: {output}")
                self.executor.run(Command.of("grub-mkconfig", "-o", output))
                return
        self.report.warn("boot", "GRUB detected but grub.cfg path not found; skipping grub-mkconfig.")

    # -- services --------------------------------------------------------------

    def select_display_manager(self) -> str:
        """Pick SDDM, or the Plasma login manager when SDDM is absent.

        Returns:
            The unit to enable. Falls back to sddm.service with a warning
            when neither unit is visible, so a live run fails on enable.
        """
        self.services.refresh()
        for unit in catalog.DISPLAY_MANAGERS:
            if self.services.exists(unit):
                return unit
        preferred = catalog.DISPLAY_MANAGERS[0]
        self.report.warn(
            "services",
            f"Neither {' nor '.join(catalog.DISPLAY_MANAGERS)} is visible; assuming {preferred}.",
        )
        return preferred

    def disable_competing_display_managers(self, chosen: str) -> list[str]:
        """Disable and stop every other installed display manager, best effort.

        Returns:
            Units that were disabled.
        """
        disabled: list[str] = []
        for unit in catalog.COMPETING_DISPLAY_MANAGERS:
            if unit == chosen or not self.services.exists(unit):
                continue
            self.report.info("services", f"Disabling competing display manager: {unit}")
            with self.report.best_effort(f"disable {unit}"):
                self.executor.run(Command.of("systemctl", "disable", unit))
            with self.report.best_effort(f"stop {unit}"):
                self.executor.run(Command.of("systemctl", "stop", unit))
            disabled.append(unit)
        return disabled

    def enable_services(self) -> None:
        """Enable networking and the display manager, then optional units.

        Raises:
            CommandError: If NetworkManager or the display manager cannot
                be enabled.
        """
        self.report.info("services", "Configuring the display manager and required services...")
        manager = self.select_display_manager()
        self.display_manager = manager
        self.disable_competing_display_managers(manager)

        for spec in catalog.REPAIR_REQUIRED_SERVICES:
            self._service_operator.enable(spec.unit, now=spec.now)
        with self.report.best_effort("default target"):
            self.executor.run(Command.of("systemctl", "set-default", catalog.GRAPHICAL_TARGET))
        self._service_operator.enable(manager)

        for spec in catalog.REPAIR_OPTIONAL_SERVICES:
            with self.report.best_effort(f"enable {spec.unit}"):
                self._service_operator.enable(spec.unit, now=spec.now)

    def print_summary(self) -> None:
        """Print next steps and the log location."""
        print_section("PATCH COMPLETE")
        console.print(f"Hostname set to: {self.options.hostname or '<not changed>'}")
        console.print(f"NVIDIA driver package: {self.driver}")
        console.print(f"GPU vendor: {self.gpu_vendor or '<not detected>'}")
        console.print(f"Display manager: {self.display_manager}")
        if self.report.has_warnings:
            console.print(f"[warning]{len(self.report.warnings)} warning(s) recorded.[/]")
        console.print("Next steps:")
        console.print('  1) Reboot and log into "Plasma (X11)" first.')
        console.print('  2) Once that works, try "Plasma (Wayland)".')
        console.print(f"  3) If it still loops, check {self.layout.diagnostics_dir}.")
        if self.log_path is not None:
            console.print(f"Log file: {self.log_path}", soft_wrap=True)
