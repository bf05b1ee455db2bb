"""Installer steps 1-3: partitions, locale and time zone.

Each choice is validated against the live system (locale.gen, the
zoneinfo tree) before anything is written. Up to MAX_ATTEMPTS invalid
answers are tolerated, then the run aborts.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from archforge.core.errors import InvalidInputError, PreconditionError
from archforge.core.executor import Command
from archforge.utils.formatting import console, print_section
from archforge.utils.shell import command_exists

if TYPE_CHECKING:
    from archforge.core.executor import Executor
    from archforge.core.paths import HostLayout
    from archforge.core.report import RunReport
    from archforge.installer.prompter import Prompter

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

# "en_US.UTF-8 UTF-8" with an optional leading "#": name and upper-case charset
_LOCALE_LINE = re.compile(r"^\s*#?\s*(\S+)\s+([A-Z0-9][A-Z0-9_-]*)\s*$")


def confirm_partitions(prompter: Prompter, report: RunReport) -> None:
    """Make sure the operator has / and /boot mounted.

    Raises:
        PreconditionError: If the operator answers no.
    """
    print_section("Step 1/4: Partitions")
    console.print("This setup requires only:")
    console.print("  - / (root)")
    console.print("  - /boot (boot)")
    console.print("If partitions are not created/mounted yet, STOP and do it now.")

    if prompter.assume_yes:
        report.info("partitions", "Assume-yes: skipping partition prompt.")
        return

    if not prompter.confirm("Are root (/) and /boot ready and mounted?", default=False):
        raise PreconditionError("Aborted. Prepare partitions and re-run.")


def known_locales(locale_gen: Path) -> set[str]:
    """Collect locale names listed in locale.gen, commented or not.

    Args:
        locale_gen: Path to /etc/locale.gen.

    Returns:
        Locale names, e.g. {"en_US.UTF-8", "pl_PL.UTF-8"}. Empty if the
        file does not exist.
    """
    try:
        text = locale_gen.read_text(encoding="utf-8")
    except FileNotFoundError:
        return set()

    names: set[str] = set()
    for line in text.splitlines():
        match = _LOCALE_LINE.match(line)
        if match:
            names.add(match.group(1))
    return names


def uncomment_locale(text: str, locale: str) -> str:
    """Uncomment the locale.gen lines whose name is locale."""
    pattern = re.compile(rf"^[ \t]*#[ \t]*({re.escape(locale)}[ \t].*)$", re.MULTILINE)
    return pattern.sub(r"\1", text)


def select_locale(prompter: Prompter, layout: HostLayout, default: str, report: RunReport) -> str:
    """Ask for a locale until a valid one is given.

    Raises:
        InvalidInputError: After MAX_ATTEMPTS invalid answers.
    """
    print_section("Step 2/4: Locale")
    valid = known_locales(layout.locale_gen)

    for _ in range(MAX_ATTEMPTS):
        locale = prompter.ask("Locale (e.g., en_US.UTF-8)", default)
        if not locale:
            report.warn("locale", "Locale cannot be empty.")
            continue
        if locale in valid:
            return locale
        report.warn("locale", f"Locale '{locale}' not found in {layout.locale_gen}.")

    raise InvalidInputError("Too many invalid locale attempts.")


def apply_locale(executor: Executor, layout: HostLayout, locale: str, report: RunReport) -> None:
    """Enable the locale, generate it and make it the system default."""
    report.info("locale", f"Configuring locale: {locale}")

    if layout.locale_gen.exists():
        original = layout.locale_gen.read_text(encoding="utf-8")
        patched = uncomment_locale(original, locale)
        if patched != original:
            executor.write_file(layout.locale_gen, patched)

    executor.run(Command.of("locale-gen"))
    executor.write_file(layout.locale_conf, f"LANG={locale}\n")


def is_valid_timezone(layout: HostLayout, timezone: str) -> bool:
    """Check that a time zone names an entry under the zoneinfo tree."""
    candidate = PurePosixPath(timezone)
    if candidate.is_absolute() or ".." in candidate.parts:
        return False
    return (layout.zoneinfo / candidate).exists()


def select_timezone(prompter: Prompter, layout: HostLayout, default: str, report: RunReport) -> str:
    """Ask for a time zone until a valid one is given.

    Raises:
        InvalidInputError: After MAX_ATTEMPTS invalid answers.
    """
    print_section("Step 3/4: Time Zone")

    for _ in range(MAX_ATTEMPTS):
        timezone = prompter.ask("Time zone (e.g., America/New_York, Europe/Warsaw)", default)
        if not timezone:
            report.warn("timezone", "Time zone cannot be empty.")
            continue
        if is_valid_timezone(layout, timezone):
            return timezone
        report.warn("timezone", f"Time zone '{timezone}' not found under {layout.zoneinfo}.")

    raise InvalidInputError("Too many invalid time zone attempts.")


def apply_timezone(executor: Executor, layout: HostLayout, timezone: str, report: RunReport) -> None:
    """Point /etc/localtime at the zone and sync the hardware clock."""
    report.info("timezone", f"Configuring time zone: {timezone}")
    executor.run(Command.of("ln", "-sf", layout.zoneinfo / timezone, layout.localtime))

    if command_exists("timedatectl"):
        executor.run(Command.of("timedatectl", "set-timezone", timezone))

    with report.best_effort("hwclock"):
        executor.run(Command.of("hwclock", "--systohc"))
