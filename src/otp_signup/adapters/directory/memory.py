"""
In-memory account store - Implements UserDirectory, AccountGateway and AccountRegistry.

Process-lifetime storage for development and tests. Accounts disappear when
the process exits.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass

import bcrypt

from otp_signup.domain.ports import AccountCreationResponse, DirectoryField
from otp_signup.domain.registration import AccountRecord, RegistrationForm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _StoredAccount:
    record: AccountRecord
    name: str
    password_hash: str | None


class InMemoryAccountStore:
    """
    Implements UserDirectory, AccountGateway and AccountRegistry protocols in memory.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Answers account creation with HTTP-style statuses (201, 409) so it can
    stand in for the remote backend.
    """

    def __init__(self, accounts: list[AccountRecord] | None = None, bcrypt_cost: int = 10) -> None:
        self._bcrypt_cost = bcrypt_cost
        self._lock = asyncio.Lock()
        self._accounts: list[_StoredAccount] = [
            _StoredAccount(record=record, name="", password_hash=None) for record in accounts or []
        ]

    @property
    def records(self) -> list[AccountRecord]:
        return [stored.record for stored in self._accounts]

    async def exists(self, field: DirectoryField, value: str) -> bool:
        return self._find(field, value)

    async def create_account(
        self, form: RegistrationForm, otp_code: str
    ) -> AccountCreationResponse:
        email = form.email.strip().lower()
        mobile_number = form.mobile_number.strip()

        async with self._lock:
            if self._find(DirectoryField.EMAIL, email):
                return AccountCreationResponse(
                    status_code=409, message="Email already registered"
                )
            if self._find(DirectoryField.MOBILE, mobile_number):
                return AccountCreationResponse(
                    status_code=409, message="Mobile number already registered"
                )

            record = AccountRecord(
                email=email, mobile_number=mobile_number, account_id=str(uuid.uuid4())
            )
            self._accounts.append(
                _StoredAccount(
                    record=record,
                    name=form.name.strip(),
                    password_hash=self._hash_password(form.password),
                )
            )

        logger.info("Stored account %s for %s", record.account_id, email)
        return AccountCreationResponse(
            status_code=201, message="Signup successful", account_id=record.account_id
        )

    async def record(self, account: AccountRecord, form: RegistrationForm) -> None:
        """Mirror an account created by the remote backend (no local password)."""
        async with self._lock:
            if self._find(DirectoryField.EMAIL, account.email) or self._find(
                DirectoryField.MOBILE, account.mobile_number
            ):
                return
            self._accounts.append(
                _StoredAccount(record=account, name=form.name.strip(), password_hash=None)
            )
        logger.info("Mirrored remote account %s for %s", account.account_id, account.email)

    def _find(self, field: DirectoryField, value: str) -> bool:
        if field == DirectoryField.EMAIL:
            value = value.strip().lower()
            return any(stored.record.email == value for stored in self._accounts)
        return any(stored.record.mobile_number == value for stored in self._accounts)

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self._bcrypt_cost)).decode()
