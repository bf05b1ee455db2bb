"""Unit tests for account models."""

from pathlib import Path

import pytest
from archforge.core.errors import InvalidInputError
from archforge.models.account import AccountRequest, AccountSummary, validate_username


class TestValidateUsername:
    @pytest.mark.parametrize("name", ["alice", "_svc", "dev-1", "a_b"])
    def test_valid(self, name: str) -> None:
        assert validate_username(name) == name

    @pytest.mark.parametrize("name", ["", "Alice", "1user", "bob smith", "-x", "eve$"])
    def test_invalid(self, name: str) -> None:
        with pytest.raises(InvalidInputError, match="Invalid username"):
            validate_username(name)


class TestAccountRequest:
    def test_validated_on_construction(self) -> None:
        with pytest.raises(InvalidInputError):
            AccountRequest("Root")

    def test_defaults(self) -> None:
        request = AccountRequest("alice")
        assert request.shell == "/bin/bash"
        assert request.home is None
        assert not request.with_password


class TestAccountSummary:
    def test_rows(self) -> None:
        summary = AccountSummary(
            username="alice",
            created=True,
            home=Path("/home/alice"),
            shell="/bin/zsh",
            primary_group="alice",
            groups=("alice", "wheel"),
            home_owner="alice:alice",
            home_mode="755",
            password_locked=True,
        )

        rows = dict(summary.rows())

        assert rows["Groups"] == "alice wheel"
        assert rows["Password"] == "LOCKED"
        assert rows["Home perms"] == "755"
