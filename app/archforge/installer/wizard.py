"""Module selection wizard.

Asks one yes/no question per module, turns the answers into installer
flags and runs ``archforge install`` as a child process.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from archforge.utils.formatting import console, create_summary_table, print_info, print_section
from archforge.utils.shell import run_interactive

if TYPE_CHECKING:
    from archforge.installer.prompter import Prompter

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WizardQuestion:
    """One yes/no question.

    Attributes:
        key: WizardAnswers field the answer goes to.
        text: Question shown to the operator.
        default: Answer on empty input or under --yes.
    """

    key: str
    text: str
    default: bool


QUESTIONS: tuple[WizardQuestion, ...] = (
    WizardQuestion("base", "Install base system packages?", True),
    WizardQuestion("kde", "Install KDE Plasma desktop?", True),
    WizardQuestion("dev", "Install dev toolchain?", True),
    WizardQuestion("gaming", "Install gaming stack?", False),
    WizardQuestion("qol", "Install QoL apps (browsers/media/chat)?", True),
    WizardQuestion("gpu", "Install Intel+NVIDIA GPU stack?", True),
    WizardQuestion("audio", "Install PipeWire audio stack?", True),
    WizardQuestion("hw", "Install hardware/filesystem support?", True),
    WizardQuestion("printing", "Install printing stack?", False),
    WizardQuestion("flatpak", "Install Flatpak + KDE integration?", False),
    WizardQuestion("zerotier", "Install ZeroTier?", False),
    WizardQuestion("tools", "Install desktop tools (office/IRC/remote/Docker)?", False),
)

# Answers that map to --with-<module> and count as "optional modules"
_MODULE_KEYS = ("kde", "dev", "gaming", "qol", "gpu", "audio", "hw")
_ADDON_KEYS = ("printing", "flatpak", "zerotier", "tools")


@dataclass(frozen=True, slots=True)
class WizardAnswers:
    """Yes/no answers for every wizard question."""

    base: bool = True
    kde: bool = True
    dev: bool = True
    gaming: bool = False
    qol: bool = True
    gpu: bool = True
    audio: bool = True
    hw: bool = True
    printing: bool = False
    flatpak: bool = False
    zerotier: bool = False
    tools: bool = False

    @property
    def any_optional(self) -> bool:
        """Check if any optional module (not an add-on) was chosen."""
        return any(getattr(self, key) for key in _MODULE_KEYS)

    def to_install_args(self, dry_run: bool = False) -> list[str]:
        """Translate the answers into ``archforge install`` flags.

        Args:
            dry_run: Forward ``--dry-run``.

        Returns:
            Argument list, always including ``--yes``.
        """
        args: list[str] = ["--dry-run"] if dry_run else []
        args.append("--yes")

        for key in (*_MODULE_KEYS, *_ADDON_KEYS):
            if getattr(self, key):
                args.append(f"--with-{key}")

        if not self.base:
            args.append("--no-base")
        elif not self.any_optional:
            args.append("--base-only")

        return args

    def rows(self) -> list[tuple[str, bool]]:
        """Question key and answer pairs, in question order."""
        return [(f.name, getattr(self, f.name)) for f in fields(self)]


def ask_questions(prompter: Prompter) -> WizardAnswers:
    """Ask every question in order.

    Under assume-yes each question takes its default.
    """
    answers = {q.key: prompter.confirm(q.text, default=q.default) for q in QUESTIONS}
    return WizardAnswers(**answers)


def installer_command(args: list[str]) -> list[str]:
    """Argument vector that runs the installer with this interpreter."""
    return [sys.executable, "-m", "archforge", "install", *args]


def run_wizard(
    prompter: Prompter,
    dry_run: bool = False,
    launcher: Callable[[list[str]], int] = run_interactive,
) -> int:
    """Ask the questions and launch the installer.

    Args:
        prompter: Source of answers.
        dry_run: Forward dry-run mode to the installer.
        launcher: Runs the installer argv and returns its exit code.

    Returns:
        The installer's exit code, or 0 if the operator aborted.
    """
    print_section("Archforge Modular Wizard")
    console.print("Step 1: Base install (required for a functional system)")
    console.print("Step 2: Optional modules (KDE, dev tools, gaming, etc.)")

    answers = ask_questions(prompter)

    table = create_summary_table("Selection Summary", ("Module", "Install"))
    for key, value in answers.rows():
        table.add_row(key, "[enabled]y[/]" if value else "[disabled]n[/]")
    console.print(table)

    if not prompter.assume_yes and not prompter.confirm("Proceed with install?", default=False):
        console.print("Aborted.")
        return 0

    argv = installer_command(answers.to_install_args(dry_run))
    print_info(f"Running: archforge install {' '.join(argv[4:])}")
    logger.info("Launching installer: %s", argv)
    return launcher(argv)
