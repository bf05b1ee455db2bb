"""Boot configuration patches for NVIDIA KMS under Wayland.

Three places may carry the kernel side of ``nvidia_drm modeset=1``:
the mkinitcpio MODULES list, GRUB's default kernel command line and
systemd-boot loader entries. Each transform is pure and idempotent:
content that already carries the setting comes back unchanged.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from archforge.core.executor import Executor

logger = logging.getLogger(__name__)

NVIDIA_MODULES = ("nvidia", "nvidia_modeset", "nvidia_uvm", "nvidia_drm")
KERNEL_PARAM = "nvidia_drm.modeset=1"
MODPROBE_FILE = "nvidia-wayland.conf"
MODPROBE_OPTIONS = "options nvidia_drm modeset=1\n"

_MODULES_LINE = re.compile(r"^MODULES=\(([^)]*)\)", re.MULTILINE)
_GRUB_LINE = re.compile(r"^(GRUB_CMDLINE_LINUX_DEFAULT=)([\"'])(.*?)\2", re.MULTILINE)
_OPTIONS_LINE = re.compile(r"^([ \t]*options[ \t]+.*?)[ \t]*$", re.MULTILINE)


def patch_mkinitcpio_modules(text: str) -> str:
    """Put the NVIDIA modules at the front of MODULES=().

    Existing entries are kept after them, without duplicates.
    """
    match = _MODULES_LINE.search(text)
    if match is None:
        return text

    existing = match.group(1).split()
    if all(module in existing for module in NVIDIA_MODULES):
        return text

    merged = [*NVIDIA_MODULES, *(m for m in existing if m not in NVIDIA_MODULES)]
    return f"{text[: match.start()]}MODULES=({' '.join(merged)}){text[match.end() :]}"


def patch_grub_cmdline(text: str) -> str:
    """Append the modeset parameter to GRUB_CMDLINE_LINUX_DEFAULT."""
    if KERNEL_PARAM in text:
        return text

    match = _GRUB_LINE.search(text)
    if match is None:
        return text

    prefix, quote, value = match.groups()
    value = f"{value} {KERNEL_PARAM}".strip()
    return f"{text[: match.start()]}{prefix}{quote}{value}{quote}{text[match.end() :]}"


def patch_loader_entry(text: str) -> str:
    """Append the modeset parameter to every ``options`` line."""
    if KERNEL_PARAM in text:
        return text
    return _OPTIONS_LINE.sub(lambda m: f"{m.group(1)} {KERNEL_PARAM}", text)


def patch_file(path: Path, transform: Callable[[str], str], executor: Executor) -> bool:
    """Apply a text transform to a file, writing only on change.

    Args:
        path: File to patch.
        transform: Pure function from old to new content.
        executor: Executor performing the write.

    Returns:
        True if the content changed (or would change in dry-run).
    """
    original = path.read_text(encoding="utf-8")
    patched = transform(original)
    if patched == original:
        logger.debug("%s already patched", path)
        return False
    executor.write_file(path, patched)
    return True


def loader_entries(entry_dirs: tuple[Path, ...]) -> list[Path]:
    """List loader entry files found in existing directories, sorted."""
    entries: list[Path] = []
    for directory in entry_dirs:
        if directory.is_dir():
            entries.extend(sorted(directory.glob("*.conf")))
    return entries
