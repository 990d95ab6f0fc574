"""
Unit tests for InMemoryAccountStore adapter.

Tests verify directory lookups, HTTP-style account creation answers and
password hashing.
"""

import asyncio

import bcrypt
import pytest

from otp_signup.adapters.directory.memory import InMemoryAccountStore
from otp_signup.domain.ports import DirectoryField
from otp_signup.domain.registration import AccountRecord, RegistrationForm


def make_form(email: str = "jo@x.com", mobile_number: str = "9876543210") -> RegistrationForm:
    return RegistrationForm(
        name="Jo",
        password="Abcdef12!",
        confirm_password="Abcdef12!",
        age_bracket="21-30",
        gender="Female",
        email=email,
        mobile_number=mobile_number,
    )


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore(bcrypt_cost=4)


class TestExists:
    """Tests for directory lookups."""

    @pytest.mark.asyncio
    async def test_seeded_accounts_are_found(self) -> None:
        store = InMemoryAccountStore(
            accounts=[AccountRecord(email="a@x.com", mobile_number="1111111111")]
        )

        assert await store.exists(DirectoryField.EMAIL, "a@x.com") is True
        assert await store.exists(DirectoryField.EMAIL, "A@X.com ") is True
        assert await store.exists(DirectoryField.MOBILE, "1111111111") is True
        assert await store.exists(DirectoryField.MOBILE, "2222222222") is False

    @pytest.mark.asyncio
    async def test_fields_do_not_cross_match(self) -> None:
        store = InMemoryAccountStore(
            accounts=[AccountRecord(email="1111111111", mobile_number="1111111111")]
        )
        assert await store.exists(DirectoryField.EMAIL, "2222222222") is False


class TestCreateAccount:
    """Tests for create_account."""

    @pytest.mark.asyncio
    async def test_created(self, store: InMemoryAccountStore) -> None:
        response = await store.create_account(make_form(email=" Jo@X.com "), "123456")

        assert response.status_code == 201
        assert response.account_id
        assert store.records == [
            AccountRecord(email="jo@x.com", mobile_number="9876543210", account_id=response.account_id)
        ]
        assert await store.exists(DirectoryField.EMAIL, "jo@x.com") is True

    @pytest.mark.asyncio
    async def test_duplicate_email(self, store: InMemoryAccountStore) -> None:
        await store.create_account(make_form(), "123456")

        response = await store.create_account(make_form(mobile_number="1111111111"), "123456")

        assert response.status_code == 409
        assert "Email" in response.message

    @pytest.mark.asyncio
    async def test_duplicate_mobile(self, store: InMemoryAccountStore) -> None:
        await store.create_account(make_form(), "123456")

        response = await store.create_account(make_form(email="other@x.com"), "123456")

        assert response.status_code == 409
        assert "Mobile" in response.message

    @pytest.mark.asyncio
    async def test_password_is_bcrypt_hashed(self, store: InMemoryAccountStore) -> None:
        await store.create_account(make_form(), "123456")

        stored = store._accounts[0]
        assert stored.password_hash != "Abcdef12!"
        assert stored.password_hash.startswith("$2b$04$")
        assert bcrypt.checkpw(b"Abcdef12!", stored.password_hash.encode())

    @pytest.mark.asyncio
    async def test_concurrent_creates_exactly_one_succeeds(
        self, store: InMemoryAccountStore
    ) -> None:
        responses = await asyncio.gather(
            *(store.create_account(make_form(), "123456") for _ in range(5))
        )

        statuses = sorted(r.status_code for r in responses)
        assert statuses == [201, 409, 409, 409, 409]
        assert len(store.records) == 1


class TestRecord:
    """Tests for mirroring accounts created by the remote backend."""

    @pytest.mark.asyncio
    async def test_recorded_account_is_found(self, store: InMemoryAccountStore) -> None:
        account = AccountRecord(email="jo@x.com", mobile_number="9876543210", account_id="r-7")

        await store.record(account, make_form())

        assert store.records == [account]
        assert await store.exists(DirectoryField.EMAIL, "JO@x.com")
        assert await store.exists(DirectoryField.MOBILE, "9876543210")
        assert store._accounts[0].password_hash is None

    @pytest.mark.asyncio
    async def test_record_is_idempotent(self, store: InMemoryAccountStore) -> None:
        account = AccountRecord(email="jo@x.com", mobile_number="9876543210", account_id="r-7")

        await store.record(account, make_form())
        await store.record(account, make_form())

        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_recorded_account_blocks_local_create(
        self, store: InMemoryAccountStore
    ) -> None:
        await store.record(
            AccountRecord(email="jo@x.com", mobile_number="9876543210", account_id="r-7"),
            make_form(),
        )

        response = await store.create_account(make_form(mobile_number="9123456780"), "123456")

        assert response.status_code == 409
        assert "Email" in response.message
