"""Defaults file commands.

Writes and displays the TOML file holding installer and VM defaults.
"""

from pathlib import Path
from typing import Annotated

import typer

from archforge.cli.types import fail
from archforge.core.config import ArchforgeConfig, ConfigError, load_config, save_config
from archforge.core.paths import get_default_config_path
from archforge.utils.formatting import console, create_summary_table, print_info, print_success

app = typer.Typer(
    help="Manage the defaults file.",
    no_args_is_help=True,
)

PathOption = Annotated[
    Path | None,
    typer.Option(
        "--path",
        "-p",
        help="Defaults file location (default: ARCHFORGE_CONFIG or /etc/archforge/defaults.toml).",
    ),
]


@app.command()
def init(
    path: PathOption = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing file.",
        ),
    ] = False,
) -> None:
    """Write a defaults file with the built-in values."""
    target = path or get_default_config_path()
    if target.exists() and not force:
        fail(f"{target} already exists. Use --force to overwrite.")

    try:
        written = save_config(ArchforgeConfig(), target)
    except ConfigError as e:
        fail(str(e), e)

    print_success(f"Defaults written to {written}")
    print_info("Edit the file to change locale, timezone, Flatpak apps or VM settings.")


@app.command()
def show(path: PathOption = None) -> None:
    """Show the effective defaults."""
    target = path or get_default_config_path()
    try:
        config = load_config(target)
    except ConfigError as e:
        fail(str(e), e)

    source = str(target) if target.exists() else "built-in"
    table = create_summary_table(f"Defaults ({source})", ("Key", "Value"))
    table.add_row("locale", config.locale)
    table.add_row("timezone", config.timezone)
    table.add_row("flatpak_apps", ", ".join(config.flatpak_apps) or "-")
    for key, value in config.vm.model_dump().items():
        table.add_row(f"vm.{key}", str(value))
    console.print(table)
