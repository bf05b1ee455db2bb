"""Best-effort diagnostic snapshots for login-loop investigations.

Each snapshot runs one read-only command, optionally filters and tails
its output, and saves the result under /root/patch-diagnostics. A
snapshot that fails is recorded as an advisory finding; it never ends
the run.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from archforge.utils.shell import run_command

if TYPE_CHECKING:
    from archforge.core.executor import Executor
    from archforge.core.paths import HostLayout
    from archforge.core.report import RunReport

logger = logging.getLogger(__name__)

# journalctl over a whole boot can be slow
_CAPTURE_TIMEOUT: float = 120.0


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One diagnostic capture.

    Attributes:
        filename: File written under the diagnostics directory.
        argv: Read-only command producing the data.
        pattern: Keep only lines matching this regex (case-insensitive).
        tail: Keep only the last N lines.
        with_stderr: Append stderr to the captured output.
    """

    filename: str
    argv: tuple[str, ...]
    pattern: str | None = None
    tail: int | None = None
    with_stderr: bool = False

    def describe(self) -> str:
        """Shell-like rendering of what the snapshot does."""
        parts = [shlex.join(self.argv)]
        if self.pattern:
            parts.append(f"grep -Ei {shlex.quote(self.pattern)}")
        if self.tail:
            parts.append(f"tail -{self.tail}")
        return " | ".join(parts)

    def select(self, output: str) -> str:
        """Apply the filter and the tail to raw command output."""
        lines = output.splitlines()
        if self.pattern:
            regex = re.compile(self.pattern, re.IGNORECASE)
            lines = [line for line in lines if regex.search(line)]
        if self.tail:
            lines = lines[-self.tail :]
        return "\n".join(lines) + "\n" if lines else ""

    def capture(self) -> str:
        """Run the command and return the selected output.

        Raises:
            OSError: If the command cannot be started.
            subprocess.TimeoutExpired: If the command hangs.
        """
        result = run_command(list(self.argv), timeout=_CAPTURE_TIMEOUT)
        output = result.stdout
        if self.with_stderr and result.stderr:
            output += result.stderr
        return self.select(output)


def default_snapshots(layout: HostLayout) -> list[Snapshot]:
    """The fixed snapshot set."""
    return [
        Snapshot("sddm-journal.txt", ("journalctl", "-b", "-u", "sddm", "--no-pager"), tail=200),
        Snapshot(
            "session-grep.txt",
            ("journalctl", "-b", "--no-pager"),
            pattern=r"sddm|kwin|plasma|wayland|nvidia",
            tail=300,
        ),
        Snapshot(
            "session-files.txt",
            ("ls", "-la", str(layout.xsessions_dir), str(layout.wayland_sessions_dir)),
            with_stderr=True,
        ),
        Snapshot(
            "pkg-state.txt",
            ("pacman", "-Q"),
            pattern=r"^(plasma|sddm|kwin|pipewire|wireplumber|jack2|nvidia|mesa|vulkan|networkmanager)",
        ),
    ]


class DiagnosticsCollector:
    """Write diagnostic snapshots through an executor.

    In dry-run mode nothing is captured; each snapshot shows up as a
    simulated write describing the command it would have run.
    """

    def __init__(
        self,
        executor: Executor,
        layout: HostLayout,
        report: RunReport,
        snapshots: list[Snapshot] | None = None,
    ) -> None:
        self.executor = executor
        self.layout = layout
        self.report = report
        self.snapshots = snapshots if snapshots is not None else default_snapshots(layout)

    @property
    def directory(self) -> Path:
        return self.layout.diagnostics_dir

    def collect(self) -> list[Path]:
        """Write every snapshot that succeeds.

        Returns:
            Paths written (or that would be written in dry-run).
        """
        self.report.info("diagnostics", "Collecting SDDM/session diagnostics (best-effort)...")
        with self.report.best_effort("diagnostics directory"):
            self.executor.make_dirs(self.directory)

        written: list[Path] = []
        for snapshot in self.snapshots:
            target = self.directory / snapshot.filename
            try:
                if self.executor.dry_run:
                    text = f"<output of: {snapshot.describe()}>\n"
                else:
                    text = snapshot.capture()
                self.executor.write_file(target, text)
            except (OSError, subprocess.TimeoutExpired) as e:
                self.report.warn("diagnostics", f"{snapshot.filename} not collected: {e}")
                continue
            logger.debug("Snapshot %s written", target)
            written.append(target)
        return written
