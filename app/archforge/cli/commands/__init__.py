"""CLI commands for archforge.

This package contains all subcommand implementations.
"""

from archforge.cli.commands import config, install, repair, user, vm, wizard

__all__ = ["config", "install", "repair", "user", "vm", "wizard"]
