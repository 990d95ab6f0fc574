"""
Unit tests for DuplicateAccountChecker.

Tests verify:
- Independent per-field lookups
- both_exist derivation
- Email normalization before lookup
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from otp_signup.adapters.directory.memory import InMemoryAccountStore
from otp_signup.domain.duplicates import DuplicateAccountChecker, DuplicateCheckResult
from otp_signup.domain.ports import DirectoryField
from otp_signup.domain.registration import AccountRecord


@pytest.fixture
def directory() -> InMemoryAccountStore:
    return InMemoryAccountStore(
        accounts=[AccountRecord(email="a@x.com", mobile_number="1111111111")]
    )


class TestDuplicateCheckResult:
    """Tests for the derived flags."""

    @pytest.mark.parametrize(
        ("email_exists", "mobile_exists", "both"),
        [(False, False, False), (True, False, False), (False, True, False), (True, True, True)],
    )
    def test_both_exist_requires_both(
        self, email_exists: bool, mobile_exists: bool, both: bool
    ) -> None:
        result = DuplicateCheckResult(email_exists=email_exists, mobile_exists=mobile_exists)
        assert result.both_exist is both


class TestCheck:
    """Tests for check() against a directory."""

    @pytest.mark.asyncio
    async def test_only_email_exists(self, directory: InMemoryAccountStore) -> None:
        checker = DuplicateAccountChecker(directory=directory)

        result = await checker.check("a@x.com", "9999999999")

        assert result == DuplicateCheckResult(email_exists=True, mobile_exists=False)
        assert result.both_exist is False

    @pytest.mark.asyncio
    async def test_only_mobile_exists(self, directory: InMemoryAccountStore) -> None:
        checker = DuplicateAccountChecker(directory=directory)

        result = await checker.check("new@x.com", "1111111111")

        assert result.email_exists is False
        assert result.mobile_exists is True

    @pytest.mark.asyncio
    async def test_both_exist(self, directory: InMemoryAccountStore) -> None:
        checker = DuplicateAccountChecker(directory=directory)

        result = await checker.check("a@x.com", "1111111111")

        assert result.both_exist is True

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, directory: InMemoryAccountStore) -> None:
        checker = DuplicateAccountChecker(directory=directory)

        result = await checker.check("  A@X.COM ", "9999999999")

        assert result.email_exists is True

    @pytest.mark.asyncio
    async def test_two_independent_lookups(self) -> None:
        """One lookup per field, each with its own field name."""
        directory = AsyncMock()
        directory.exists.return_value = False
        checker = DuplicateAccountChecker(directory=directory)

        await checker.check("User@Example.com", "9876543210")

        assert directory.exists.await_count == 2
        directory.exists.assert_any_await(DirectoryField.EMAIL, "user@example.com")
        directory.exists.assert_any_await(DirectoryField.MOBILE, "9876543210")

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self) -> None:
        """Both lookups are in flight at the same time."""
        in_flight = 0
        peak = 0

        class SlowDirectory:
            async def exists(self, field: DirectoryField, value: str) -> bool:
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0)
                in_flight -= 1
                return False

        checker = DuplicateAccountChecker(directory=SlowDirectory())

        await checker.check("a@x.com", "9876543210")

        assert peak == 2

    @pytest.mark.asyncio
    async def test_directory_not_mutated(self, directory: InMemoryAccountStore) -> None:
        checker = DuplicateAccountChecker(directory=directory)

        await checker.check("new@x.com", "9999999999")

        assert directory.records == [AccountRecord(email="a@x.com", mobile_number="1111111111")]
