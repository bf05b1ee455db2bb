"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from archforge import __version__
from archforge.cli.commands import config, install, repair, user, vm, wizard
from archforge.cli.types import LENIENT_CONTEXT
from archforge.core.logfile import configure_console_logging

# Create main Typer app
app = typer.Typer(
    name="archforge",
    help="Provision, repair and test Arch Linux desktop installations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"archforge version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log every step to stderr.",
        ),
    ] = False,
) -> None:
    """archforge - Arch Linux provisioning toolkit.

    Install a modular KDE desktop, repair a broken session, manage
    accounts and try it all in a throwaway VM.
    """
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_console_logging(verbose)


# Register commands. The installer family accepts unknown flags with a warning.
app.command(name="install", context_settings=LENIENT_CONTEXT)(install.install)
app.command(name="wizard", context_settings=LENIENT_CONTEXT)(wizard.wizard)
app.command(name="repair", context_settings=LENIENT_CONTEXT)(repair.repair)
app.add_typer(user.app, name="user")
app.add_typer(vm.app, name="vm")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
