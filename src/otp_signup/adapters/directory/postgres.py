"""
PostgreSQL account store - Implements UserDirectory, AccountGateway and AccountRegistry.

This module provides the PostgreSQL implementation of the domain's
directory and account-creation ports using psycopg3 with raw SQL.

Duplicate Safety:
-----------------
The accounts table carries UNIQUE constraints on both email and
mobile_number. Account creation uses INSERT ... ON CONFLICT DO NOTHING and
then looks up which field collided, so two concurrent signups for the same
email or number can never both succeed and the loser is told which field
was taken.

Accounts created by a remote signup backend are mirrored with record().
They carry the backend's id in remote_id and no local password hash.

psycopg_pool.ConnectionPool is blocking; every call is moved off the event
loop with asyncio.to_thread. Connection failures surface as
GatewayUnavailable.
"""

import asyncio
import logging
from pathlib import Path

import bcrypt
import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from otp_signup.domain.exceptions import GatewayUnavailable
from otp_signup.domain.ports import AccountCreationResponse, DirectoryField
from otp_signup.domain.registration import AccountRecord, RegistrationForm

logger = logging.getLogger(__name__)

# Structure: src/otp_signup/adapters/directory/postgres.py -> <root>/migrations/
MIGRATIONS_DIR = Path(__file__).parents[4] / "migrations"

_COLUMNS = {
    DirectoryField.EMAIL: "email",
    DirectoryField.MOBILE: "mobile_number",
}

_UNAVAILABLE_ERRORS = (psycopg.OperationalError, PoolTimeout)


class PostgresAccountStore:
    """
    Implements UserDirectory, AccountGateway and AccountRegistry via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, bcrypt_cost: int = 10) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            bcrypt_cost: bcrypt work factor for stored password hashes
        """
        self._pool = pool
        self._bcrypt_cost = bcrypt_cost

    async def exists(self, field: DirectoryField, value: str) -> bool:
        return await self._run(self._exists, field, value)

    async def create_account(
        self, form: RegistrationForm, otp_code: str
    ) -> AccountCreationResponse:
        return await self._run(self._create_account, form)

    async def record(self, account: AccountRecord, form: RegistrationForm) -> None:
        await self._run(self._record, account, form)

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except _UNAVAILABLE_ERRORS as e:
            logger.warning("Account database unavailable: %s", e)
            raise GatewayUnavailable(f"Account database unavailable: {e}") from e

    def _exists(self, field: DirectoryField, value: str) -> bool:
        # Column name comes from a fixed mapping, never from caller input
        column = _COLUMNS[field]
        if field == DirectoryField.EMAIL:
            value = value.strip().lower()
        sql = f"SELECT 1 FROM accounts WHERE {column} = %s LIMIT 1"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (value,))
            return cursor.fetchone() is not None

    def _create_account(self, form: RegistrationForm) -> AccountCreationResponse:
        """
        Insert the account unless the email or mobile number is taken.

        Returns:
            201 with the new account id, or 409 naming the colliding field
        """
        email = form.email.strip().lower()
        mobile_number = form.mobile_number.strip()
        password_hash = bcrypt.hashpw(
            form.password.encode(), bcrypt.gensalt(rounds=self._bcrypt_cost)
        ).decode()

        insert_sql = """
            INSERT INTO accounts (name, email, mobile_number, age_bracket, gender, password_hash, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT DO NOTHING
            RETURNING id
        """

        collision_sql = """
            SELECT email = %s, mobile_number = %s
            FROM accounts
            WHERE email = %s OR mobile_number = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                insert_sql,
                (form.name.strip(), email, mobile_number, form.age_bracket, form.gender, password_hash),
            )
            row = cursor.fetchone()
            if row is not None:
                conn.commit()
                logger.info("Stored account %s for %s", row[0], email)
                return AccountCreationResponse(
                    status_code=201, message="Signup successful", account_id=str(row[0])
                )

            cursor.execute(collision_sql, (email, mobile_number, email, mobile_number))
            collisions = cursor.fetchall()
            conn.commit()

        email_taken = any(r[0] for r in collisions)
        mobile_taken = any(r[1] for r in collisions)
        if email_taken and mobile_taken:
            message = "Email and mobile number already registered"
        elif email_taken:
            message = "Email already registered"
        elif mobile_taken:
            message = "Mobile number already registered"
        else:
            message = "Account already exists"
        return AccountCreationResponse(status_code=409, message=message)

    def _record(self, account: AccountRecord, form: RegistrationForm) -> None:
        sql = """
            INSERT INTO accounts (name, email, mobile_number, age_bracket, gender, remote_id, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT DO NOTHING
        """

        with self._pool.connection() as conn:
            conn.execute(
                sql,
                (
                    form.name.strip(),
                    account.email,
                    account.mobile_number,
                    form.age_bracket,
                    form.gender,
                    account.account_id,
                ),
            )
            conn.commit()
        logger.info("Mirrored remote account %s for %s", account.account_id, account.email)


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Apply every *.sql file in migrations_dir, in filename order.

    Files must be idempotent (IF NOT EXISTS, DROP NOT NULL, ...): they are
    re-applied on every startup.

    Raises:
        RuntimeError: If a file fails; the remaining files are not applied
    """
    sql_files = sorted(migrations_dir.glob("*.sql")) if migrations_dir.is_dir() else []
    if not sql_files:
        logger.warning("No migrations found in %s", migrations_dir)
        return

    for sql_file in sql_files:
        logger.info("Applying migration %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except psycopg.Error as e:
            logger.error("Migration %s failed: %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

    logger.info("Applied %d migration(s)", len(sql_files))
