"""Disposable QEMU VM for trying the installer against a clean Arch ISO.

Artifacts live in one directory: a cached base image, a copy-on-write
overlay that is thrown away by reset, the downloaded ISO with its
checksum manifest, and the noVNC bridge PID file.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from archforge.core.config import VmConfig
from archforge.core.errors import PreconditionError
from archforge.core.executor import Command, CommandError, Executor, SubprocessExecutor
from archforge.core.paths import HostLayout, get_vm_dir
from archforge.core.privileges import is_arch_linux, is_root
from archforge.core.report import RunReport
from archforge.operators.pacman import PacmanOperator
from archforge.scanners.accounts import SystemAccountDatabase
from archforge.scanners.base import AccountDatabase, PackageSource
from archforge.scanners.pacman import PacmanSource
from archforge.utils.formatting import print_info
from archforge.utils.shell import command_exists, run_interactive, sudo_user
from archforge.vm import iso
from archforge.vm.bridge import NoVncBridge, find_web_root

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VmPaths:
    """File locations inside the VM artifact directory.

    Attributes:
        directory: Artifact directory.
    """

    directory: Path

    @classmethod
    def default(cls) -> VmPaths:
        """Paths under the configured VM directory."""
        return cls(get_vm_dir())

    @property
    def base(self) -> Path:
        return self.directory / "arch-base.qcow2"

    @property
    def overlay(self) -> Path:
        return self.directory / "arch-test.qcow2"

    @property
    def iso(self) -> Path:
        return self.directory / iso.ISO_NAME

    @property
    def manifest(self) -> Path:
        return self.directory / iso.MANIFEST_NAME

    @property
    def pid_file(self) -> Path:
        return self.directory / "novnc.pid"


def build_qemu_args(paths: VmPaths, config: VmConfig, share_root: Path, web: bool) -> list[str]:
    """Build the qemu-system-x86_64 argument vector.

    Args:
        paths: Artifact locations.
        config: VM settings.
        share_root: Host directory exported to the guest over 9p.
        web: Headless with VNC instead of a GTK window.

    Returns:
        Full argv including the program name.
    """
    tag = config.mount_tag
    args = [
        "qemu-system-x86_64",
        "-machine", "type=q35,accel=kvm:tcg",
        "-cpu", "host",
        "-smp", str(config.cpus),
        "-m", str(config.ram_mb),
        "-drive", f"file={paths.overlay},if=virtio,format=qcow2",
        "-cdrom", str(paths.iso),
        "-boot", "d",
        "-virtfs", f"local,path={share_root},mount_tag={tag},security_model=none,id={tag}",
        "-netdev", f"user,id=net0,hostfwd=tcp::{config.ssh_port}-:22",
        "-device", "virtio-net-pci,netdev=net0",
    ]
    if web:
        display = config.vnc_port - 5900
        args += ["-display", "none", "-vnc", f"{config.vnc_bind}:{display}"]
    else:
        args += ["-display", "gtk"]
    return args


class VmHarness:
    """Prepare, launch and reset the test VM.

    Attributes:
        paths: Artifact locations.
        config: VM settings.
        share_root: Host directory shared with the guest.
        executor: Executor for downloads, package installs and image creation.
        report: Findings recorded during the run.
    """

    def __init__(
        self,
        paths: VmPaths,
        config: VmConfig,
        share_root: Path,
        executor: Executor | None = None,
        source: PackageSource | None = None,
        accounts: AccountDatabase | None = None,
        layout: HostLayout | None = None,
        report: RunReport | None = None,
        launcher: Callable[[list[str]], int] = run_interactive,
    ) -> None:
        self.paths = paths
        self.config = config
        self.share_root = share_root
        self.executor = executor or SubprocessExecutor()
        self.source = source or PacmanSource()
        self.accounts = accounts or SystemAccountDatabase()
        self.layout = layout or HostLayout()
        self.report = report or RunReport()
        self.launcher = launcher
        self.bridge = NoVncBridge(
            paths.pid_file,
            config.novnc_port,
            f"{config.vnc_bind}:{config.vnc_port}",
        )
        self._packages = PacmanOperator(self.executor, self.source)

    # -- ownership -------------------------------------------------------------

    def owner(self) -> str | None:
        """Return "user:group" of the sudo-invoking user when running as root."""
        if not is_root():
            return None
        user = sudo_user()
        if user is None or self.accounts.lookup(user) is None:
            return None
        return f"{user}:{self.accounts.primary_group(user) or user}"

    def fix_ownership(self) -> None:
        """Hand the artifact directory back to the invoking user, best effort."""
        owner = self.owner()
        if owner is None or not self.paths.directory.is_dir():
            return
        with self.report.best_effort("vm ownership"):
            self.executor.run(Command.of("chown", "-R", owner, self.paths.directory))

    # -- preparation -----------------------------------------------------------

    def ensure_dependencies(self, web: bool) -> None:
        """Install QEMU, a downloader and, for web mode, the bridge.

        Raises:
            PreconditionError: If the host is not Arch Linux.
        """
        if not is_arch_linux(self.layout):
            raise PreconditionError("Auto dependency install is supported only on Arch hosts.")

        deps: list[str] = []
        if not command_exists("qemu-system-x86_64") or not command_exists("qemu-img"):
            deps.append("qemu-desktop")
        if not command_exists("curl") and not command_exists("wget"):
            deps.append("curl")
        if deps:
            print_info(f"Installing dependencies: {' '.join(deps)}")
            self._packages.install_sudo(deps)

        if not web:
            return

        web_deps: list[str] = []
        if not command_exists("websockify"):
            for candidate in ("python-websockify", "websockify"):
                if self.source.is_available(candidate):
                    web_deps.append(candidate)
                    break
        if find_web_root(self.bridge.web_roots) is None and self.source.is_available("novnc"):
            web_deps.append("novnc")
        if web_deps:
            print_info(f"Installing web mode dependencies: {' '.join(web_deps)}")
            self._packages.install_sudo(web_deps)

    def ensure_iso(self) -> None:
        """Download and verify the ISO unless it is already cached.

        An image that was not verified is never left in the cache.

        Raises:
            ChecksumError: If verification fails.
            CommandError: If a download fails.
        """
        if self.paths.iso.exists():
            return

        base_url = self.config.iso_mirror.rstrip("/")
        print_info("Downloading latest Arch ISO...")
        try:
            iso.download(f"{base_url}/{iso.ISO_NAME}", self.paths.iso, self.executor)
            iso.download(f"{base_url}/{iso.MANIFEST_NAME}", self.paths.manifest, self.executor)
            iso.verify_iso(self.paths.iso, self.paths.manifest)
        except (CommandError, OSError, iso.ChecksumError):
            self.paths.iso.unlink(missing_ok=True)
            raise
        print_info(f"ISO ready: {self.paths.iso}")

    def ensure_images(self) -> None:
        """Create the base image and the overlay when missing."""
        if not self.paths.base.exists():
            print_info(f"Creating base image: {self.paths.base} ({self.config.disk_size})")
            self.executor.run(
                Command.of("qemu-img", "create", "-f", "qcow2", self.paths.base, self.config.disk_size)
            )
        if not self.paths.overlay.exists():
            print_info(f"Creating overlay image: {self.paths.overlay}")
            self.executor.run(
                Command.of(
                    "qemu-img", "create", "-f", "qcow2", "-F", "qcow2", "-b", self.paths.base, self.paths.overlay
                )
            )

    # -- operations ------------------------------------------------------------

    def run(self, web: bool = False) -> int:
        """Prepare everything and run QEMU in the foreground.

        Args:
            web: Headless VNC plus noVNC bridge, falling back to a GTK
                window when the bridge cannot start.

        Returns:
            QEMU's exit code.
        """
        self.paths.directory.mkdir(parents=True, exist_ok=True)
        self.fix_ownership()

        self.ensure_dependencies(web)
        self.ensure_iso()
        self.ensure_images()
        self.fix_ownership()

        bridged = False
        if web:
            print_info(f"VNC available at {self.config.vnc_bind}:{self.config.vnc_port}")
            bridged = self.bridge.start()
            if not bridged:
                self.report.warn("vm", "Web mode unavailable (noVNC/websockify). Falling back to GUI.")

        args = build_qemu_args(self.paths, self.config, self.share_root, web=bridged)
        print_info(f"VM files in: {self.paths.directory}")
        print_info(f"SSH forward: localhost:{self.config.ssh_port} -> guest:22")
        print_info(f"Host project is shared to guest as 9p tag: {self.config.mount_tag}")
        print_info("In guest run:")
        print_info(f"  mkdir -p /mnt/{self.config.mount_tag}")
        print_info(
            f"  mount -t 9p -o trans=virtio,version=9p2000.L {self.config.mount_tag} /mnt/{self.config.mount_tag}"
        )
        print_info("Starting QEMU...")
        logger.info("QEMU argv: %s", args)

        try:
            return self.launcher(args)
        except OSError as e:
            raise PreconditionError(f"Cannot start QEMU: {e}") from e
        finally:
            if bridged:
                self.bridge.stop()

    def clean(self) -> None:
        """Stop the bridge and delete every artifact."""
        self.bridge.stop()
        if self.paths.directory.exists():
            logger.info("Removing %s", self.paths.directory)
            shutil.rmtree(self.paths.directory)
        self.paths.directory.mkdir(parents=True, exist_ok=True)
        self.fix_ownership()
        print_info(f"Clean complete: {self.paths.directory}")

    def reset(self, remove_base: bool = False) -> None:
        """Stop the bridge and drop the overlay (and optionally the base)."""
        self.paths.directory.mkdir(parents=True, exist_ok=True)
        self.fix_ownership()
        self.bridge.stop()

        self._remove_image(self.paths.overlay, "Overlay")
        if remove_base:
            self._remove_image(self.paths.base, "Base")
        else:
            print_info(f"Keeping base image: {self.paths.base}")

        self.fix_ownership()
        print_info("VM reset complete.")

    def _remove_image(self, path: Path, label: str) -> None:
        if path.exists():
            print_info(f"Removing {label.lower()} image: {path}")
            path.unlink()
        else:
            self.report.warn("vm", f"{label} image not found: {path}")
