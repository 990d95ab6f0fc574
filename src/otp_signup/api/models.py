"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field rules (digits, lengths, allowed values) are enforced by the domain so
that every violation is reported together; the models only fix the shape.
"""

from pydantic import BaseModel, Field

from otp_signup.domain.password import PasswordStrength
from otp_signup.domain.ports import ChallengeState, OtpVerifyResult


class PasswordStrengthRequest(BaseModel):
    """Request model for password strength scoring."""

    password: str = ""


class PasswordStrengthResponse(BaseModel):
    """Response model for password strength scoring."""

    strength: PasswordStrength
    message: str


class SessionResponse(BaseModel):
    """Response model for a newly opened registration session."""

    session_id: str


class OtpRequest(BaseModel):
    """Request model for sending an OTP."""

    mobile_number: str = Field(..., description="10-digit mobile number")


class OtpStatusResponse(BaseModel):
    """Current OTP challenge state and countdown."""

    state: ChallengeState
    mobile_number: str | None
    remaining_seconds: int
    fresh: bool


class OtpVerifyRequest(BaseModel):
    """Request model for OTP verification."""

    code: str = Field(..., description="6-digit OTP")


class OtpVerifyResponse(BaseModel):
    """Response model for an OTP verification attempt."""

    result: OtpVerifyResult
    state: ChallengeState
    remaining_seconds: int


class SubmitRequest(BaseModel):
    """Request model for signup submission."""

    name: str = ""
    password: str = ""
    confirm_password: str = ""
    age_bracket: str = ""
    gender: str = ""
    email: str = ""
    mobile_number: str = ""
    otp_code: str = ""


class AccountResponse(BaseModel):
    """Response model for a created account."""

    email: str
    mobile_number: str
    account_id: str | None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    kind: str | None = None
    field_errors: dict[str, str] = {}
