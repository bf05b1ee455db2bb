"""Abstract capability providers.

Providers answer questions about the host (is a package in the repository,
does a unit file exist, who is this user) without changing anything.
They run in dry-run mode too, and tests replace them with in-memory fakes.
"""

from abc import ABC, abstractmethod

from archforge.models.account import UserRecord


class PackageSource(ABC):
    """Answers repository and installed-state questions about packages.

    Example:
        >>> source = PacmanSource()
        >>> source.is_available("firefox")
        True
    """

    @abstractmethod
    def is_available(self, name: str) -> bool:
        """Check if a package exists in the configured repositories.

        Args:
            name: Package name.

        Returns:
            True if the package can be installed.
        """

    @abstractmethod
    def is_installed(self, name: str) -> bool:
        """Check if a package is currently installed.

        Args:
            name: Package name.

        Returns:
            True if the package is installed.
        """

    def invalidate(self) -> None:
        """Forget cached installed-state answers.

        Called after pacman transactions, which change what is installed.
        """


class ServiceManager(ABC):
    """Answers whether a service unit is known to the host."""

    @abstractmethod
    def exists(self, unit: str) -> bool:
        """Check if a unit file with this exact name exists.

        Args:
            unit: Unit name including its suffix, e.g. "sddm.service".
        """

    def refresh(self) -> None:
        """Forget cached unit information.

        Called after package installation, which may add unit files.
        """


class AccountDatabase(ABC):
    """Read access to users and groups."""

    @abstractmethod
    def lookup(self, name: str) -> UserRecord | None:
        """Return the passwd entry for a user, or None if absent."""

    @abstractmethod
    def group_exists(self, name: str) -> bool:
        """Check if a group exists."""

    @abstractmethod
    def primary_group(self, name: str) -> str | None:
        """Return the name of a user's primary group, or None if unknown."""

    @abstractmethod
    def groups_of(self, name: str) -> list[str]:
        """Return all group names a user belongs to, primary group first."""

    @abstractmethod
    def password_locked(self, name: str) -> bool:
        """Check if password login is locked for a user."""

    def user_exists(self, name: str) -> bool:
        """Check if a user exists."""
        return self.lookup(name) is not None
