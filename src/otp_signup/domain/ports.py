"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the value types that cross those ports.
Adapters implement these protocols.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .registration import AccountRecord, RegistrationForm


class ChallengeState(str, Enum):
    """
    OTP challenge states.

    State Transitions:
    - IDLE -> SENDING (request_otp accepted)
    - SENDING -> SENT (gateway accepted dispatch)
    - SENDING -> FAILED (gateway rejected dispatch or was unreachable)
    - SENT -> VERIFYING (submit_code with a well-formed code)
    - SENT -> EXPIRED (120-second window elapsed, time-driven)
    - VERIFYING -> VERIFIED (gateway confirmed the code in time)
    - VERIFYING -> SENT (invalid code, challenge still usable)
    - VERIFYING -> EXPIRED (confirmation arrived after the window)
    - VERIFYING -> FAILED (gateway reports the challenge as gone)
    - any -> IDLE (mobile number changed or challenge discarded)

    EXPIRED and FAILED are terminal until a new OTP is requested.
    """

    IDLE = "IDLE"
    SENDING = "SENDING"
    SENT = "SENT"
    VERIFYING = "VERIFYING"
    VERIFIED = "VERIFIED"
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"


class OtpVerifyResult(Enum):
    """Result of a single OTP verification attempt."""

    VERIFIED = "verified"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    CHALLENGE_GONE = "challenge_gone"


class DirectoryField(str, Enum):
    """Account fields the user directory can be queried by."""

    EMAIL = "email"
    MOBILE = "mobile"


@dataclass(frozen=True)
class DispatchResponse:
    """Answer of the OTP gateway to a dispatch request."""

    accepted: bool
    error: str | None = None


@dataclass(frozen=True)
class VerifyResponse:
    """
    Answer of the OTP gateway to a verification request.

    challenge_gone is set when the remote service no longer knows the
    challenge (expired or consumed server-side), as opposed to a wrong code.
    """

    verified: bool
    message: str | None = None
    challenge_gone: bool = False


@dataclass(frozen=True)
class AccountCreationResponse:
    """HTTP-shaped answer of the account-creation endpoint."""

    status_code: int
    message: str | None = None
    account_id: str | None = None


class Clock(Protocol):
    """Port interface for time. Injected so expiry can be simulated."""

    def now(self) -> float:
        """Return the current time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for the given number of seconds."""
        ...


class OtpGateway(Protocol):
    """Port interface for OTP dispatch and verification."""

    async def dispatch_otp(self, mobile_number: str) -> DispatchResponse:
        """
        Ask the remote service to send an OTP to the mobile number.

        Raises:
            GatewayUnavailable: If the service cannot be reached
        """
        ...

    async def verify_otp(self, mobile_number: str, code: str) -> VerifyResponse:
        """
        Ask the remote service whether the code matches the issued OTP.

        Raises:
            GatewayUnavailable: If the service cannot be reached
        """
        ...


class AccountGateway(Protocol):
    """Port interface for remote account creation."""

    async def create_account(
        self, form: RegistrationForm, otp_code: str
    ) -> AccountCreationResponse:
        """
        Create the account described by the form.

        Non-2xx statuses are returned, not raised.

        Raises:
            GatewayUnavailable: If the service cannot be reached
        """
        ...


class UserDirectory(Protocol):
    """Port interface for existing-account lookups."""

    async def exists(self, field: DirectoryField, value: str) -> bool:
        """
        Return True if an account with this field value already exists.

        Raises:
            GatewayUnavailable: If the directory cannot be reached
        """
        ...


class AccountRegistry(Protocol):
    """Port interface for mirroring accounts created elsewhere into the directory."""

    async def record(self, account: AccountRecord, form: RegistrationForm) -> None:
        """
        Add an account created by the remote service. Already-known accounts
        are left as they are.

        Raises:
            GatewayUnavailable: If the directory cannot be reached
        """
        ...
