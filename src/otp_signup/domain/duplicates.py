"""
Duplicate account detection.

Queries the injected user directory once per field so the caller can tell
which field collided.
"""

import asyncio
from dataclasses import dataclass

from .ports import DirectoryField, UserDirectory


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


@dataclass(frozen=True)
class DuplicateCheckResult:
    """Per-field collision flags."""

    email_exists: bool
    mobile_exists: bool

    @property
    def both_exist(self) -> bool:
        return self.email_exists and self.mobile_exists

    @property
    def any_exist(self) -> bool:
        return self.email_exists or self.mobile_exists


@dataclass
class DuplicateAccountChecker:
    """Looks up an email and a mobile number independently."""

    directory: UserDirectory

    async def check(self, email: str, mobile_number: str) -> DuplicateCheckResult:
        """
        Check both fields against the directory.

        The two lookups run concurrently; both complete before returning.
        The directory is never mutated.
        """
        email_exists, mobile_exists = await asyncio.gather(
            self.directory.exists(DirectoryField.EMAIL, normalize_email(email)),
            self.directory.exists(DirectoryField.MOBILE, mobile_number.strip()),
        )
        return DuplicateCheckResult(
            email_exists=bool(email_exists), mobile_exists=bool(mobile_exists)
        )
