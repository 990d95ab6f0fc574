"""
Registration domain service - Guarded signup submission.

This module contains the orchestration that turns a filled-in form into an
account. Submission is gated, in order, by:

1. Field validation (all violations collected before stopping)
2. OTP gate (challenge VERIFIED, fresh, and bound to the form's number)
3. Duplicate check (email and mobile looked up independently)
4. Remote account creation

Each failure maps to exactly one RegistrationErrorKind. Nothing reaches the
network until steps 1 and 2 pass. On success the account is mirrored into the
local registry (when accounts live elsewhere), the challenge is discarded and
the form cleared so a consumed OTP cannot be replayed.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from .duplicates import DuplicateAccountChecker, normalize_email
from .exceptions import GatewayUnavailable
from .otp import OtpChallenge, is_valid_mobile_number
from .ports import AccountGateway, AccountRegistry

logger = logging.getLogger(__name__)

AGE_BRACKETS = ("5-10", "11-20", "21-30", "31-40", "41-50", "51-60", "61-70", "71+")
GENDERS = ("Male", "Female", "Other")

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")

_CONFLICT_STATUSES = frozenset({400, 409})


class RegistrationErrorKind(str, Enum):
    """Every way a submission can fail. All are recoverable by the caller."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    OTP_NOT_VERIFIED = "OTP_NOT_VERIFIED"
    OTP_EXPIRED = "OTP_EXPIRED"
    ACCOUNT_EXISTS_EMAIL = "ACCOUNT_EXISTS_EMAIL"
    ACCOUNT_EXISTS_MOBILE = "ACCOUNT_EXISTS_MOBILE"
    ACCOUNT_EXISTS_BOTH = "ACCOUNT_EXISTS_BOTH"
    ACCOUNT_EXISTS_UNKNOWN = "ACCOUNT_EXISTS_UNKNOWN"
    NETWORK_ERROR = "NETWORK_ERROR"
    REMOTE_ERROR = "REMOTE_ERROR"


@dataclass
class RegistrationForm:
    """Signup form contents. Mutable: cleared after a successful submit."""

    name: str = ""
    password: str = ""
    confirm_password: str = ""
    age_bracket: str = ""
    gender: str = ""
    email: str = ""
    mobile_number: str = ""
    otp_code: str = ""

    def clear(self) -> None:
        """Reset every field to empty."""
        self.name = ""
        self.password = ""
        self.confirm_password = ""
        self.age_bracket = ""
        self.gender = ""
        self.email = ""
        self.mobile_number = ""
        self.otp_code = ""


@dataclass(frozen=True)
class AccountRecord:
    """Account as known to the user directory."""

    email: str
    mobile_number: str
    account_id: str | None = None


@dataclass(frozen=True)
class RegistrationFailure:
    """Why a submission was refused."""

    kind: RegistrationErrorKind
    message: str
    field_errors: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None


@dataclass(frozen=True)
class RegistrationResult:
    """Either a created account or a failure, never both."""

    account: AccountRecord | None = None
    error: RegistrationFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def discard_session(self) -> bool:
        """True when the caller must drop its challenge and form."""
        return self.ok


def validate_form(
    form: RegistrationForm, allowed_email_domains: tuple[str, ...] = ()
) -> dict[str, str]:
    """
    Check every field of the form.

    Returns:
        Mapping of field name to message, empty when the form is valid
    """
    errors: dict[str, str] = {}

    if not form.name.strip():
        errors["name"] = "Please enter name"

    if not form.password:
        errors["password"] = "Please enter password"

    if not form.confirm_password:
        errors["confirm_password"] = "Please enter confirm password"
    elif form.password and form.password != form.confirm_password:
        errors["confirm_password"] = "Passwords do not match"

    if not form.age_bracket:
        errors["age_bracket"] = "Please select age"
    elif form.age_bracket not in AGE_BRACKETS:
        errors["age_bracket"] = "Please select a valid age bracket"

    if not form.gender:
        errors["gender"] = "Please select gender"
    elif form.gender not in GENDERS:
        errors["gender"] = "Please select a valid gender"

    email = normalize_email(form.email)
    if not email:
        errors["email"] = "Please enter email ID"
    elif EMAIL_PATTERN.fullmatch(email) is None:
        errors["email"] = "Please enter a valid email ID"
    elif allowed_email_domains:
        domain = email.rsplit("@", 1)[1]
        if domain not in allowed_email_domains:
            allowed = ", ".join(f"@{d}" for d in allowed_email_domains)
            errors["email"] = f"Only {allowed} addresses are allowed"

    mobile_number = form.mobile_number.strip()
    if not mobile_number:
        errors["mobile_number"] = "Please enter mobile number"
    elif not is_valid_mobile_number(mobile_number):
        errors["mobile_number"] = "Please enter a valid 10-digit mobile number"

    return errors


@dataclass
class RegistrationOrchestrator:
    """
    Domain service for guarded account creation.

    Composes field validation, the OTP gate, the duplicate check and the
    remote account-creation call into a single submit.
    """

    accounts: AccountGateway
    allowed_email_domains: tuple[str, ...] = ()
    registry: AccountRegistry | None = None

    async def submit(
        self,
        form: RegistrationForm,
        challenge: OtpChallenge,
        checker: DuplicateAccountChecker,
    ) -> RegistrationResult:
        """
        Submit the form for account creation.

        Args:
            form: Filled-in signup form
            challenge: OTP challenge that verified the form's mobile number
            checker: Duplicate lookup over the user directory

        Returns:
            RegistrationResult with the created AccountRecord, or the
            RegistrationFailure of the first gate that refused
        """
        field_errors = validate_form(form, self.allowed_email_domains)
        if field_errors:
            return self._fail(
                RegistrationErrorKind.VALIDATION_FAILED,
                "Please correct the highlighted fields",
                field_errors=field_errors,
            )

        email = normalize_email(form.email)
        mobile_number = form.mobile_number.strip()

        refused = self._check_otp_gate(challenge, mobile_number)
        if refused is not None:
            return refused

        try:
            duplicates = await checker.check(email, mobile_number)
        except GatewayUnavailable as e:
            return self._fail(
                RegistrationErrorKind.NETWORK_ERROR,
                f"Unable to check for existing accounts: {e}",
            )
        if duplicates.both_exist:
            return self._fail(
                RegistrationErrorKind.ACCOUNT_EXISTS_BOTH,
                "Both email and mobile already registered",
            )
        if duplicates.email_exists:
            return self._fail(
                RegistrationErrorKind.ACCOUNT_EXISTS_EMAIL, "This email is already registered"
            )
        if duplicates.mobile_exists:
            return self._fail(
                RegistrationErrorKind.ACCOUNT_EXISTS_MOBILE,
                "This mobile number is already registered",
            )

        # Challenge can go stale or be reset while the lookups are awaited.
        refused = self._check_otp_gate(challenge, mobile_number)
        if refused is not None:
            return refused

        otp_code = challenge.code or form.otp_code
        try:
            response = await self.accounts.create_account(form, otp_code)
        except GatewayUnavailable as e:
            return self._fail(
                RegistrationErrorKind.NETWORK_ERROR,
                f"Unable to reach the signup service: {e}",
            )

        status_code = response.status_code
        if 200 <= status_code < 300:
            account = AccountRecord(
                email=email, mobile_number=mobile_number, account_id=response.account_id
            )
            if self.registry is not None:
                try:
                    await self.registry.record(account, form)
                except GatewayUnavailable as e:
                    # The account exists remotely; only the local mirror is missing
                    logger.error("Could not mirror account for %s: %s", email, e)
            challenge.discard()
            form.clear()
            logger.info("Account created for %s (%s)", email, account.account_id)
            return RegistrationResult(account=account)

        if status_code in _CONFLICT_STATUSES:
            return self._fail(
                self._conflict_kind(response.message),
                response.message or "Account already exists",
                status_code=status_code,
            )

        return self._fail(
            RegistrationErrorKind.REMOTE_ERROR,
            response.message or f"Server error: {status_code}",
            status_code=status_code,
        )

    def _check_otp_gate(
        self, challenge: OtpChallenge, mobile_number: str
    ) -> RegistrationResult | None:
        if not challenge.is_verified_for(mobile_number):
            return self._fail(
                RegistrationErrorKind.OTP_NOT_VERIFIED, "Please verify OTP first"
            )
        if not challenge.is_fresh():
            return self._fail(
                RegistrationErrorKind.OTP_EXPIRED,
                "Verification expired. Send a new OTP and complete signup "
                f"within {challenge.grace_seconds:g} seconds",
            )
        return None

    @staticmethod
    def _conflict_kind(message: str | None) -> RegistrationErrorKind:
        text = (message or "").lower()
        if "email" in text:
            return RegistrationErrorKind.ACCOUNT_EXISTS_EMAIL
        if "mobile" in text:
            return RegistrationErrorKind.ACCOUNT_EXISTS_MOBILE
        return RegistrationErrorKind.ACCOUNT_EXISTS_UNKNOWN

    @staticmethod
    def _fail(
        kind: RegistrationErrorKind,
        message: str,
        field_errors: dict[str, str] | None = None,
        status_code: int | None = None,
    ) -> RegistrationResult:
        logger.warning("Registration refused: %s (%s)", kind.value, message)
        return RegistrationResult(
            error=RegistrationFailure(
                kind=kind,
                message=message,
                field_errors=field_errors or {},
                status_code=status_code,
            )
        )
