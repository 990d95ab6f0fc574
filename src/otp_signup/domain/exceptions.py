"""
Domain exceptions - Semantic error types for the signup flow.

This module defines domain-specific exceptions raised when a caller drives
the OTP challenge outside its allowed transitions, or when an external
capability cannot be reached. Submission failures are not exceptions: the
orchestrator reports them as a RegistrationFailure.
"""


class SignupError(Exception):
    """Base class for signup domain errors."""

    pass


class InvalidMobileNumber(SignupError):
    """Mobile number is not exactly 10 digits."""

    pass


class InvalidOtpCode(SignupError):
    """OTP code is not exactly 6 digits."""

    pass


class ChallengeStateError(SignupError):
    """Operation not allowed from the challenge's current state."""

    pass


class ChallengeBusy(ChallengeStateError):
    """A dispatch or verification call is already outstanding."""

    pass


class OtpExpired(SignupError):
    """The 120-second OTP window has elapsed."""

    pass


class OtpDispatchFailed(SignupError):
    """The OTP gateway refused or failed to send the code."""

    pass


class GatewayUnavailable(SignupError):
    """A remote capability could not be reached (connection error, timeout)."""

    pass
