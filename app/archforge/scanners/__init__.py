"""Read-only queries of the host.

This module exports the capability interfaces and their live-system
implementations.
"""

from archforge.scanners.accounts import SystemAccountDatabase
from archforge.scanners.base import AccountDatabase, PackageSource, ServiceManager
from archforge.scanners.pacman import PacmanSource
from archforge.scanners.systemd import SystemdServiceManager

__all__ = [
    "AccountDatabase",
    "PackageSource",
    "PacmanSource",
    "ServiceManager",
    "SystemAccountDatabase",
    "SystemdServiceManager",
]
