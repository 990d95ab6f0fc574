"""
API v1 routes.

Defines REST endpoints for the OTP-gated signup API. Routes translate HTTP
to domain calls and domain outcomes to status codes; they hold no rules.
"""

from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse, StreamingResponse

from otp_signup.api.dependencies import (
    get_countdown_interval,
    get_duplicate_checker,
    get_orchestrator,
    get_session,
    get_sessions,
)
from otp_signup.api.models import (
    AccountResponse,
    ErrorResponse,
    OtpRequest,
    OtpStatusResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
    PasswordStrengthRequest,
    PasswordStrengthResponse,
    SessionResponse,
    SubmitRequest,
)
from otp_signup.api.sessions import RegistrationSession, RegistrationSessions
from otp_signup.domain.duplicates import DuplicateAccountChecker
from otp_signup.domain.exceptions import (
    ChallengeBusy,
    ChallengeStateError,
    GatewayUnavailable,
    InvalidMobileNumber,
    InvalidOtpCode,
    OtpDispatchFailed,
    OtpExpired,
    SignupError,
)
from otp_signup.domain.otp import OtpChallenge, is_valid_mobile_number
from otp_signup.domain.password import evaluate_password_strength
from otp_signup.domain.registration import (
    RegistrationErrorKind,
    RegistrationForm,
    RegistrationOrchestrator,
)

router = APIRouter(tags=["v1"])

# Most specific first: ChallengeBusy before ChallengeStateError
_CHALLENGE_ERRORS: list[tuple[type[SignupError], int, str]] = [
    (InvalidMobileNumber, status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_MOBILE_NUMBER"),
    (InvalidOtpCode, status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_OTP_CODE"),
    (ChallengeBusy, status.HTTP_409_CONFLICT, "CHALLENGE_BUSY"),
    (ChallengeStateError, status.HTTP_409_CONFLICT, "INVALID_CHALLENGE_STATE"),
    (OtpExpired, status.HTTP_410_GONE, "OTP_EXPIRED"),
    (OtpDispatchFailed, status.HTTP_502_BAD_GATEWAY, "OTP_DISPATCH_FAILED"),
    (GatewayUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE, "NETWORK_ERROR"),
]

_SUBMIT_STATUSES = {
    RegistrationErrorKind.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RegistrationErrorKind.OTP_NOT_VERIFIED: status.HTTP_403_FORBIDDEN,
    RegistrationErrorKind.OTP_EXPIRED: status.HTTP_410_GONE,
    RegistrationErrorKind.ACCOUNT_EXISTS_EMAIL: status.HTTP_409_CONFLICT,
    RegistrationErrorKind.ACCOUNT_EXISTS_MOBILE: status.HTTP_409_CONFLICT,
    RegistrationErrorKind.ACCOUNT_EXISTS_BOTH: status.HTTP_409_CONFLICT,
    RegistrationErrorKind.ACCOUNT_EXISTS_UNKNOWN: status.HTTP_409_CONFLICT,
    RegistrationErrorKind.REMOTE_ERROR: status.HTTP_502_BAD_GATEWAY,
    RegistrationErrorKind.NETWORK_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_response(
    status_code: int,
    detail: str,
    kind: str | None = None,
    field_errors: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(detail=detail, kind=kind, field_errors=field_errors or {})
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _challenge_error_response(error: SignupError) -> JSONResponse:
    for error_type, status_code, kind in _CHALLENGE_ERRORS:
        if isinstance(error, error_type):
            return _error_response(status_code, str(error), kind)
    raise error


def _otp_status(challenge: OtpChallenge) -> OtpStatusResponse:
    return OtpStatusResponse(
        state=challenge.state,
        mobile_number=challenge.mobile_number,
        remaining_seconds=challenge.remaining_seconds(),
        fresh=challenge.is_fresh(),
    )


@router.post(
    "/password-strength",
    response_model=PasswordStrengthResponse,
    summary="Score a candidate password",
)
async def password_strength(request_data: PasswordStrengthRequest) -> PasswordStrengthResponse:
    """Score the password for live feedback. Nothing is stored."""
    result = evaluate_password_strength(request_data.password)
    return PasswordStrengthResponse(strength=result.strength, message=result.message)


@router.post(
    "/registrations",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a registration session",
)
async def open_registration(
    sessions: RegistrationSessions = Depends(get_sessions),
) -> SessionResponse:
    session = sessions.create()
    return SessionResponse(session_id=session.session_id)


@router.delete(
    "/registrations/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Unknown session"}},
    summary="Cancel a registration session",
)
async def cancel_registration(
    session: RegistrationSession = Depends(get_session),
    sessions: RegistrationSessions = Depends(get_sessions),
) -> Response:
    """Discard the OTP challenge and clear the form."""
    sessions.close(session.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/registrations/{session_id}/otp",
    response_model=OtpStatusResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown session"}},
    summary="OTP state and countdown",
)
async def otp_status(session: RegistrationSession = Depends(get_session)) -> OtpStatusResponse:
    return _otp_status(session.challenge)


@router.post(
    "/registrations/{session_id}/otp",
    response_model=OtpStatusResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown session"},
        409: {"model": ErrorResponse, "description": "OTP already outstanding or call in flight"},
        422: {"model": ErrorResponse, "description": "Invalid mobile number"},
        502: {"model": ErrorResponse, "description": "OTP could not be sent"},
    },
    summary="Send an OTP to a mobile number",
    description="Sends a 6-digit OTP valid for 120 seconds. Sending to a different "
    "number than before discards the previous challenge, including a verified one.",
)
async def request_otp(
    request_data: OtpRequest,
    session: RegistrationSession = Depends(get_session),
):
    challenge = session.challenge
    mobile_number = request_data.mobile_number.strip()
    if is_valid_mobile_number(mobile_number):
        challenge.change_mobile_number(mobile_number)
    try:
        await challenge.request_otp(mobile_number)
    except SignupError as e:
        return _challenge_error_response(e)
    return _otp_status(challenge)


@router.post(
    "/registrations/{session_id}/otp/resend",
    response_model=OtpStatusResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown session"},
        409: {"model": ErrorResponse, "description": "No number bound or call in flight"},
        502: {"model": ErrorResponse, "description": "OTP could not be sent"},
    },
    summary="Resend the OTP",
)
async def resend_otp(session: RegistrationSession = Depends(get_session)):
    """Send a fresh OTP to the same number and restart the countdown."""
    try:
        await session.challenge.resend()
    except SignupError as e:
        return _challenge_error_response(e)
    return _otp_status(session.challenge)


@router.get(
    "/registrations/{session_id}/otp/countdown",
    response_class=StreamingResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown session"}},
    summary="Stream the OTP countdown",
    description="Server-sent events carrying the remaining seconds. The stream "
    "ends once the OTP is verified, expires or is discarded.",
)
async def otp_countdown(
    session: RegistrationSession = Depends(get_session),
    interval: float = Depends(get_countdown_interval),
) -> StreamingResponse:
    async def events() -> AsyncIterator[str]:
        async for remaining in session.challenge.countdown(interval):
            yield f"data: {remaining}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")


@router.post(
    "/registrations/{session_id}/otp/verify",
    response_model=OtpVerifyResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown session"},
        409: {"model": ErrorResponse, "description": "No OTP outstanding or call in flight"},
        410: {"model": ErrorResponse, "description": "OTP expired"},
        422: {"model": ErrorResponse, "description": "Invalid OTP format"},
        503: {"model": ErrorResponse, "description": "Verification service unavailable"},
    },
    summary="Verify the OTP",
    description="A wrong code keeps the challenge open for another attempt. "
    "After verification, signup must be submitted within 100 seconds.",
)
async def verify_otp(
    request_data: OtpVerifyRequest,
    session: RegistrationSession = Depends(get_session),
):
    challenge = session.challenge
    try:
        result = await challenge.submit_code(request_data.code.strip())
    except SignupError as e:
        return _challenge_error_response(e)
    return OtpVerifyResponse(
        result=result,
        state=challenge.state,
        remaining_seconds=challenge.remaining_seconds(),
    )


@router.post(
    "/registrations/{session_id}/submit",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse, "description": "Mobile number not verified"},
        404: {"model": ErrorResponse, "description": "Unknown session"},
        409: {"model": ErrorResponse, "description": "Account already exists"},
        410: {"model": ErrorResponse, "description": "Verification no longer fresh"},
        422: {"model": ErrorResponse, "description": "Field validation failed"},
        502: {"model": ErrorResponse, "description": "Signup service error"},
        503: {"model": ErrorResponse, "description": "Signup service unreachable"},
    },
    summary="Submit the signup form",
)
async def submit_registration(
    request_data: SubmitRequest,
    session: RegistrationSession = Depends(get_session),
    sessions: RegistrationSessions = Depends(get_sessions),
    orchestrator: RegistrationOrchestrator = Depends(get_orchestrator),
    checker: DuplicateAccountChecker = Depends(get_duplicate_checker),
):
    """
    Create the account.

    Requires an OTP verified for the same mobile number less than 100 seconds
    ago. On success the session is closed and its OTP cannot be reused.
    """
    session.form = RegistrationForm(**request_data.model_dump())
    result = await orchestrator.submit(session.form, session.challenge, checker)

    if not result.ok:
        failure = result.error
        return _error_response(
            _SUBMIT_STATUSES[failure.kind],
            failure.message,
            kind=failure.kind.value,
            field_errors=failure.field_errors,
        )

    if result.discard_session:
        sessions.close(session.session_id)

    account = result.account
    return AccountResponse(
        email=account.email,
        mobile_number=account.mobile_number,
        account_id=account.account_id,
    )
