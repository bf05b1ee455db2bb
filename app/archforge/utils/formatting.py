"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich. Messages that
may contain square brackets (commands, file contents, pacman.conf
sections) are escaped so Rich does not read them as markup.
"""

from __future__ import annotations

import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from archforge.core.theme import get_theme


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_summary_table(title: str, columns: tuple[str, str] = ("Item", "Value")) -> Table:
    """Create a two-column key/value table.

    Args:
        title: Table title.
        columns: Header labels for the two columns.

    Returns:
        Rich Table configured for summaries.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column(columns[0], style="muted", no_wrap=True)
    table.add_column(columns[1], style="text")
    return table


def print_section(title: str) -> None:
    """Print a section banner."""
    console.print(f"\n[bold_header]========== {escape(title)} ==========[/]")


def print_command(prefix: str, text: str) -> None:
    """Print an executed or simulated command line.

    Args:
        prefix: Either "RUN" or "DRY-RUN".
        text: Rendered command or message.
    """
    style = "dry_run" if prefix == "DRY-RUN" else "command"
    console.print(f"[{style}]\\[{prefix}][/] {escape(text)}", soft_wrap=True)


def print_block(text: str) -> None:
    """Print a literal multi-line block (file contents)."""
    console.print(escape(text), soft_wrap=True, highlight=False)


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{escape(message)}[/]", soft_wrap=True)


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {escape(message)}", soft_wrap=True)


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {escape(message)}", soft_wrap=True)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/]", soft_wrap=True)
