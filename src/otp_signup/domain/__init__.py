"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration orchestration engine: the OTP
challenge state machine, duplicate account detection, password strength
scoring and the guarded submission workflow. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .duplicates import DuplicateAccountChecker, DuplicateCheckResult
from .exceptions import (
    ChallengeBusy,
    ChallengeStateError,
    GatewayUnavailable,
    InvalidMobileNumber,
    InvalidOtpCode,
    OtpDispatchFailed,
    OtpExpired,
    SignupError,
)
from .otp import OtpChallenge
from .password import PasswordStrength, PasswordStrengthResult, evaluate_password_strength
from .ports import (
    AccountCreationResponse,
    AccountGateway,
    AccountRegistry,
    ChallengeState,
    Clock,
    DirectoryField,
    DispatchResponse,
    OtpGateway,
    OtpVerifyResult,
    UserDirectory,
    VerifyResponse,
)
from .registration import (
    AccountRecord,
    RegistrationErrorKind,
    RegistrationFailure,
    RegistrationForm,
    RegistrationOrchestrator,
    RegistrationResult,
)

__all__ = [
    "AccountCreationResponse",
    "AccountGateway",
    "AccountRegistry",
    "AccountRecord",
    "ChallengeBusy",
    "ChallengeState",
    "ChallengeStateError",
    "Clock",
    "DirectoryField",
    "DispatchResponse",
    "DuplicateAccountChecker",
    "DuplicateCheckResult",
    "GatewayUnavailable",
    "InvalidMobileNumber",
    "InvalidOtpCode",
    "OtpChallenge",
    "OtpDispatchFailed",
    "OtpExpired",
    "OtpGateway",
    "OtpVerifyResult",
    "PasswordStrength",
    "PasswordStrengthResult",
    "RegistrationErrorKind",
    "RegistrationFailure",
    "RegistrationForm",
    "RegistrationOrchestrator",
    "RegistrationResult",
    "SignupError",
    "UserDirectory",
    "VerifyResponse",
    "evaluate_password_strength",
]
