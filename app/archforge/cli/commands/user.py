"""User account commands.

Creates or repairs a desktop user account and manages its membership in
the common desktop groups.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from archforge.accounts.provisioner import AccountProvisioner
from archforge.cli.types import fail
from archforge.core.errors import ArchforgeError
from archforge.core.executor import get_executor
from archforge.core.privileges import require_root, warn_if_not_arch
from archforge.models.account import DEFAULT_SHELL, AccountRequest, AccountSummary
from archforge.scanners.accounts import SystemAccountDatabase
from archforge.utils.formatting import (
    console,
    create_summary_table,
    print_info,
    print_section,
    print_success,
    print_warning,
)
from archforge.utils.shell import sudo_user

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Create and repair user accounts.",
    no_args_is_help=True,
)


def _print_summary(summary: AccountSummary) -> None:
    table = create_summary_table("Account", ("Field", "Value"))
    for label, value in summary.rows():
        table.add_row(label, value)
    console.print(table)


@app.command()
def add(
    username: Annotated[str, typer.Argument(help="Login name of the account.")],
    shell: Annotated[
        str,
        typer.Option(
            "--shell",
            "-s",
            help="Login shell (falls back to /bin/bash when not executable).",
        ),
    ] = DEFAULT_SHELL,
    home: Annotated[
        Path | None,
        typer.Option(
            "--home",
            "-d",
            help="Home directory (default: /home/<name>).",
        ),
    ] = None,
    with_password: Annotated[
        bool,
        typer.Option(
            "--with-password",
            help="Leave the password state alone instead of locking it.",
        ),
    ] = False,
) -> None:
    """Create a user account, or repair an existing one.

    The account gets a private group, the common desktop groups that exist
    on this host, a repaired home directory and XDG user directories.
    The password is locked unless [bold]--with-password[/bold] is given.
    """
    try:
        require_root(f"sudo archforge user add {username}")
        warn_if_not_arch()
        request = AccountRequest(username, shell=shell, home=home, with_password=with_password)
    except ArchforgeError as e:
        fail(str(e), e)

    provisioner = AccountProvisioner(get_executor(), SystemAccountDatabase())
    try:
        summary = provisioner.provision(request)
    except ArchforgeError as e:
        fail(str(e), e)

    print_section("Summary")
    _print_summary(summary)
    print_success(f"User '{username}' {'created' if summary.created else 'updated'}.")
    print_info(f"Set a password (optional): sudo passwd {username}")
    print_info(f"Verify: id {username}")


@app.command()
def groups(
    username: Annotated[
        str | None,
        typer.Argument(help="Existing account (default: the sudo user)."),
    ] = None,
) -> None:
    """Add an existing user to the common desktop groups."""
    try:
        require_root("sudo archforge user groups [NAME]")
        warn_if_not_arch()
    except ArchforgeError as e:
        fail(str(e), e)

    name = username or sudo_user()
    if not name:
        fail("Username is required (or run via sudo so SUDO_USER is set).")

    accounts = SystemAccountDatabase()
    provisioner = AccountProvisioner(get_executor(), accounts)
    try:
        provisioner.add_common_groups(name)
    except ArchforgeError as e:
        fail(str(e), e)

    record = accounts.lookup(name)
    if record is None:
        return

    print_section("Quick checks")
    summary = provisioner.summarize(name, record.home, record.shell, created=False)
    _print_summary(summary)
    if not record.home.is_dir():
        print_warning(f"Home directory is missing: {record.home}")
    if summary.password_locked:
        print_warning(f"Password login is locked. Set one with: sudo passwd {name}")
    print_info("Log out and back in for new group memberships to apply.")
