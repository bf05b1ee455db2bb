"""Mutating operations on packages and services.

Every operator routes its commands through an Executor, so dry-run mode
is decided once, by whoever builds the executor.
"""

from archforge.operators.pacman import PacmanOperator, filter_installable
from archforge.operators.systemd import ServiceOperator

__all__ = ["PacmanOperator", "ServiceOperator", "filter_installable"]
