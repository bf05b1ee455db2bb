"""Data models for archforge.

This module exports the value types shared by the installer, the repair
tool and the account provisioner.
"""

from archforge.models.account import (
    AccountRequest,
    AccountSummary,
    UserRecord,
    validate_username,
)
from archforge.models.catalog import PackageGroup, ServiceSpec
from archforge.models.modules import (
    Addon,
    InstallOptions,
    Module,
    ModuleSelection,
)

__all__ = [
    "AccountRequest",
    "AccountSummary",
    "Addon",
    "InstallOptions",
    "Module",
    "ModuleSelection",
    "PackageGroup",
    "ServiceSpec",
    "UserRecord",
    "validate_username",
]
