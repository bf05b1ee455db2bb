"""Run report: advisory warnings versus fatal errors.

Steps that are allowed to fail (service enablement, Flatpak operations,
diagnostics, XDG directory refresh) run inside RunReport.best_effort().
A failure there is recorded as an ADVISORY finding instead of aborting
the run, so callers and tests can inspect what went wrong afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from archforge.core.executor import CommandError
from archforge.utils.formatting import print_info, print_warning

logger = logging.getLogger(__name__)


class Severity(Enum):
    """How much a finding matters for the overall run."""

    INFO = "info"
    ADVISORY = "advisory"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class Finding:
    """A single recorded observation from a run.

    Attributes:
        step: Short name of the step that produced the finding.
        message: Human-readable description.
        severity: INFO, ADVISORY or FATAL.
    """

    step: str
    message: str
    severity: Severity = Severity.ADVISORY


@dataclass
class RunReport:
    """Ordered collection of findings for one invocation."""

    findings: list[Finding] = field(default_factory=list)

    def info(self, step: str, message: str) -> None:
        """Record and print an informational message."""
        self.findings.append(Finding(step, message, Severity.INFO))
        logger.info("[%s] %s", step, message)
        print_info(message)

    def warn(self, step: str, message: str) -> None:
        """Record and print an advisory warning."""
        self.findings.append(Finding(step, message, Severity.ADVISORY))
        logger.warning("[%s] %s", step, message)
        print_warning(message)

    def fatal(self, step: str, message: str) -> None:
        """Record a fatal finding. The caller is expected to raise."""
        self.findings.append(Finding(step, message, Severity.FATAL))
        logger.error("[%s] %s", step, message)

    @contextmanager
    def best_effort(self, step: str) -> Iterator[None]:
        """Run a block whose failure must not abort the run.

        CommandError and OSError raised inside the block are recorded as
        ADVISORY findings. Other exceptions propagate.

        Args:
            step: Name recorded with the finding.
        """
        try:
            yield
        except (CommandError, OSError) as e:
            self.warn(step, f"{step} failed (ignored): {e}")

    @property
    def warnings(self) -> list[Finding]:
        """All ADVISORY findings in recording order."""
        return [f for f in self.findings if f.severity == Severity.ADVISORY]

    @property
    def has_warnings(self) -> bool:
        """Check if any advisory finding was recorded."""
        return bool(self.warnings)

    def steps_with_warnings(self) -> list[str]:
        """Names of steps that recorded an advisory finding."""
        return [f.step for f in self.warnings]
