"""pacman.conf editing: enabling the [multilib] repository."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING

from archforge.core.errors import PreconditionError

if TYPE_CHECKING:
    from archforge.core.executor import Executor
    from archforge.core.paths import HostLayout
    from archforge.core.report import RunReport

logger = logging.getLogger(__name__)

MIRRORLIST_INCLUDE = "Include = /etc/pacman.d/mirrorlist"

_ACTIVE_HEADER = re.compile(r"^\[multilib\]", re.MULTILINE)
_COMMENTED_HEADER = re.compile(r"^\s*#\s*\[multilib\]\s*$")
_COMMENTED_INCLUDE = re.compile(r"^\s*#\s*(Include\s*=\s*/etc/pacman\.d/mirrorlist)\s*$")
_ANY_HEADER = re.compile(r"^\s*#?\s*\[")


def has_multilib(text: str) -> bool:
    """Check if an uncommented [multilib] section header exists."""
    return bool(_ACTIVE_HEADER.search(text))


def enable_multilib(text: str) -> str:
    """Return pacman.conf content with [multilib] enabled.

    Uncomments the stock commented block (its header and the Include
    line that belongs to it). Appends a fresh block if none exists.
    Content that already has the section is returned unchanged.

    Args:
        text: Current pacman.conf content.

    Returns:
        Patched content.
    """
    if has_multilib(text):
        return text

    lines = text.splitlines(keepends=True)
    for i, line in enumerate(lines):
        if not _COMMENTED_HEADER.match(line):
            continue
        lines[i] = "[multilib]\n"
        for j in range(i + 1, len(lines)):
            candidate = lines[j]
            if not candidate.strip() or _ANY_HEADER.match(candidate):
                break
            match = _COMMENTED_INCLUDE.match(candidate)
            if match:
                lines[j] = match.group(1) + "\n"
                break
        return "".join(lines)

    separator = "\n" if text and not text.endswith("\n") else ""
    return f"{text}{separator}\n[multilib]\n{MIRRORLIST_INCLUDE}\n"


def ensure_multilib(executor: Executor, layout: HostLayout, report: RunReport) -> bool:
    """Make sure [multilib] is enabled, backing up pacman.conf first.

    Args:
        executor: Executor used for the backup and the write.
        layout: Host layout locating pacman.conf.
        report: Run report for progress messages.

    Returns:
        True if the file was (or, in dry-run, would be) changed.

    Raises:
        PreconditionError: If pacman.conf is missing or cannot be patched.
    """
    conf = layout.pacman_conf
    report.info("multilib", f"Ensuring [multilib] is enabled in {conf}")

    try:
        text = conf.read_text(encoding="utf-8")
    except OSError as e:
        raise PreconditionError(f"Cannot read {conf}: {e}") from e

    if has_multilib(text):
        report.info("multilib", "multilib already enabled.")
        return False

    backup = conf.with_name(f"{conf.name}.bak.{datetime.now():%Y%m%d-%H%M%S}")
    executor.copy_file(conf, backup)
    report.info("multilib", f"Backup created: {backup}")

    patched = enable_multilib(text)
    if not has_multilib(patched):
        raise PreconditionError("Failed to enable multilib automatically.")

    executor.write_file(conf, patched)
    report.info("multilib", "multilib enabled.")
    return True
