"""
OTP challenge - Mobile number verification state machine.

One OtpChallenge instance backs one in-flight registration attempt and is
bound to exactly one mobile number at a time.

Challenge State Machine
=======================

States:
- IDLE: No OTP outstanding (initial state, or after the number changed)
- SENDING: Dispatch call in flight
- SENT: OTP delivered, 120-second entry window running
- VERIFYING: Verification call in flight
- VERIFIED: Code confirmed; fresh for 100 seconds after verified_at
- EXPIRED: Entry window elapsed before a confirmed code
- FAILED: Dispatch failed, or the service dropped the challenge

Valid Transitions:
    IDLE/EXPIRED/FAILED -> SENDING   (request_otp)
    any but SENDING/VERIFYING -> SENDING   (resend)
    SENDING -> SENT | FAILED
    SENT -> VERIFYING   (submit_code)
    SENT -> EXPIRED   (time-driven, applied lazily on read)
    VERIFYING -> VERIFIED | SENT | EXPIRED | FAILED
    any -> IDLE   (change_mobile_number, discard)

At most one gateway call is outstanding per challenge. A call made while
SENDING or VERIFYING is rejected locally with ChallengeBusy.

Each reset bumps a generation counter. A gateway result that comes back
after the challenge was reset belongs to an older generation and is dropped.
If the awaiting task is cancelled, the pre-call state is restored before the
cancellation propagates.
Any other failure of a gateway call ends the call state too: a dispatch
leaves the challenge FAILED, a verification returns it to SENT.
"""

import asyncio
import logging
import math
import re
from collections.abc import AsyncIterator

from .exceptions import (
    ChallengeBusy,
    ChallengeStateError,
    GatewayUnavailable,
    InvalidMobileNumber,
    InvalidOtpCode,
    OtpDispatchFailed,
    OtpExpired,
)
from .ports import ChallengeState, Clock, OtpGateway, OtpVerifyResult

logger = logging.getLogger(__name__)

OTP_TTL_SECONDS = 120  # Entry window after dispatch
SUBMISSION_GRACE_SECONDS = 100  # Submission window after verification

MOBILE_NUMBER_PATTERN = re.compile(r"[0-9]{10}")
OTP_CODE_PATTERN = re.compile(r"[0-9]{6}")

_BUSY_STATES = frozenset({ChallengeState.SENDING, ChallengeState.VERIFYING})
_REQUESTABLE_STATES = frozenset(
    {ChallengeState.IDLE, ChallengeState.EXPIRED, ChallengeState.FAILED}
)
_COUNTING_STATES = frozenset({ChallengeState.SENT, ChallengeState.VERIFYING})


def is_valid_mobile_number(mobile_number: str) -> bool:
    """True if the value is exactly 10 ASCII digits."""
    return bool(mobile_number) and MOBILE_NUMBER_PATTERN.fullmatch(mobile_number) is not None


def is_valid_otp_code(code: str) -> bool:
    """True if the value is exactly 6 ASCII digits."""
    return bool(code) and OTP_CODE_PATTERN.fullmatch(code) is not None


class OtpChallenge:
    """
    OTP issuance, expiry, verification and resend for one mobile number.

    Time is read from the injected clock, so expiry can be driven
    deterministically in tests.
    """

    def __init__(
        self,
        gateway: OtpGateway,
        clock: Clock,
        ttl_seconds: float = OTP_TTL_SECONDS,
        grace_seconds: float = SUBMISSION_GRACE_SECONDS,
    ) -> None:
        self._gateway = gateway
        self._clock = clock
        self.ttl_seconds = ttl_seconds
        self.grace_seconds = grace_seconds

        self._state = ChallengeState.IDLE
        self._mobile_number: str | None = None
        self._code: str | None = None
        self._issued_at: float | None = None
        self._expires_at: float | None = None
        self._verified_at: float | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> ChallengeState:
        """Current state, with the SENT -> EXPIRED transition applied."""
        self._apply_expiry()
        return self._state

    @property
    def mobile_number(self) -> str | None:
        return self._mobile_number

    @property
    def code(self) -> str | None:
        """Code under verification or verified; None otherwise."""
        return self._code

    @property
    def issued_at(self) -> float | None:
        return self._issued_at

    @property
    def expires_at(self) -> float | None:
        return self._expires_at

    @property
    def verified_at(self) -> float | None:
        return self._verified_at

    def remaining_seconds(self) -> int:
        """Whole seconds left in the entry window (0 outside SENT/VERIFYING)."""
        if self.state not in _COUNTING_STATES or self._expires_at is None:
            return 0
        return max(0, math.ceil(self._expires_at - self._clock.now()))

    def is_fresh(self) -> bool:
        """True while VERIFIED and within the submission grace period."""
        if self.state != ChallengeState.VERIFIED or self._verified_at is None:
            return False
        return self._clock.now() - self._verified_at < self.grace_seconds

    def is_verified_for(self, mobile_number: str) -> bool:
        """True if VERIFIED (fresh or stale) for exactly this number."""
        return self.state == ChallengeState.VERIFIED and self._mobile_number == mobile_number

    async def countdown(self, interval: float = 1.0) -> AsyncIterator[int]:
        """
        Yield remaining seconds once per interval until the window closes.

        Stops as soon as the challenge leaves SENT/VERIFYING (expired,
        verified, reset). Cancelling the consuming task stops the iterator;
        no timer outlives it.
        """
        while self.state in _COUNTING_STATES:
            yield self.remaining_seconds()
            await self._clock.sleep(interval)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def request_otp(self, mobile_number: str) -> None:
        """
        Send an OTP to the mobile number.

        Raises:
            ChallengeBusy: If a call is already in flight
            InvalidMobileNumber: If the number is not exactly 10 digits
            ChallengeStateError: If an OTP is already outstanding or verified
            OtpDispatchFailed: If the gateway refused or could not be reached
        """
        state = self.state
        if state in _BUSY_STATES:
            raise ChallengeBusy(f"OTP request rejected while {state.value}")
        if not is_valid_mobile_number(mobile_number):
            raise InvalidMobileNumber("Please enter a valid 10-digit mobile number")
        if state not in _REQUESTABLE_STATES:
            raise ChallengeStateError(f"OTP request not allowed from {state.value}")
        await self._dispatch(mobile_number)

    async def resend(self) -> None:
        """
        Re-send an OTP to the bound mobile number.

        Resets the countdown and discards any previously entered code.

        Raises:
            ChallengeBusy: If a call is already in flight
            ChallengeStateError: If no mobile number is bound
            InvalidMobileNumber: If the bound number is malformed
            OtpDispatchFailed: If the gateway refused or could not be reached
        """
        state = self.state
        if state in _BUSY_STATES:
            raise ChallengeBusy(f"Resend rejected while {state.value}")
        if self._mobile_number is None:
            raise ChallengeStateError("No mobile number to resend the OTP to")
        if not is_valid_mobile_number(self._mobile_number):
            raise InvalidMobileNumber("Please enter a valid 10-digit mobile number")
        await self._dispatch(self._mobile_number)

    async def submit_code(self, code: str) -> OtpVerifyResult:
        """
        Verify the entered code with the gateway.

        Returns:
            OtpVerifyResult.VERIFIED on success, INVALID_CODE when the code
            was wrong (challenge back in SENT), EXPIRED when the confirmation
            arrived after the window, CHALLENGE_GONE when the service no
            longer knows the challenge (challenge FAILED)

        Raises:
            ChallengeBusy: If a call is already in flight
            OtpExpired: If the entry window has elapsed
            ChallengeStateError: If no OTP is outstanding
            InvalidOtpCode: If the code is not exactly 6 digits
            GatewayUnavailable: If the gateway could not be reached
        """
        state = self.state
        if state in _BUSY_STATES:
            raise ChallengeBusy(f"Code submission rejected while {state.value}")
        if state == ChallengeState.EXPIRED:
            raise OtpExpired("OTP has expired, please request a new one")
        if state != ChallengeState.SENT:
            raise ChallengeStateError(f"Code submission not allowed from {state.value}")
        if not is_valid_otp_code(code):
            raise InvalidOtpCode("Please enter the 6-digit OTP")

        generation = self._generation
        mobile_number = self._mobile_number
        self._state = ChallengeState.VERIFYING
        self._code = code

        try:
            response = await self._gateway.verify_otp(mobile_number, code)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._state = ChallengeState.SENT
                self._code = None
            raise
        except GatewayUnavailable:
            if generation == self._generation:
                self._state = ChallengeState.SENT
                self._code = None
            logger.warning("OTP verification unavailable for %s", mobile_number)
            raise
        except Exception:
            if generation == self._generation:
                self._state = ChallengeState.SENT
                self._code = None
            logger.exception("OTP verification for %s failed unexpectedly", mobile_number)
            raise

        if generation != self._generation:
            logger.info("Dropping verification result for reset challenge (%s)", mobile_number)
            raise ChallengeStateError("Challenge was reset during verification")

        now = self._clock.now()

        if response.verified:
            if now >= self._expires_at:
                self._state = ChallengeState.EXPIRED
                self._code = None
                logger.warning("OTP for %s confirmed after expiry", mobile_number)
                return OtpVerifyResult.EXPIRED
            self._state = ChallengeState.VERIFIED
            self._verified_at = now
            logger.info("Mobile number %s verified", mobile_number)
            return OtpVerifyResult.VERIFIED

        self._code = None
        if response.challenge_gone:
            self._state = ChallengeState.FAILED
            logger.warning(
                "OTP challenge for %s dropped by service: %s", mobile_number, response.message
            )
            return OtpVerifyResult.CHALLENGE_GONE

        self._state = ChallengeState.SENT
        logger.warning("Invalid OTP entered for %s", mobile_number)
        return OtpVerifyResult.INVALID_CODE

    def change_mobile_number(self, mobile_number: str) -> None:
        """
        Bind the challenge to another mobile number.

        Verification belongs to the exact number: any outstanding or
        completed challenge is dropped and the state returns to IDLE.
        Rebinding the same number is a no-op.
        """
        if mobile_number == self._mobile_number:
            return
        if self._state != ChallengeState.IDLE:
            logger.info(
                "Mobile number changed from %s, resetting challenge", self._mobile_number
            )
        self._reset()
        self._mobile_number = mobile_number

    def discard(self) -> None:
        """Drop the challenge entirely (consumed by a submit, or cancelled)."""
        self._reset()
        self._mobile_number = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _dispatch(self, mobile_number: str) -> None:
        snapshot = self._snapshot()
        self._reset()
        generation = self._generation
        self._mobile_number = mobile_number
        self._state = ChallengeState.SENDING

        try:
            response = await self._gateway.dispatch_otp(mobile_number)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._restore(snapshot)
            raise
        except GatewayUnavailable as e:
            if generation == self._generation:
                self._state = ChallengeState.FAILED
            logger.warning("OTP dispatch to %s failed: %s", mobile_number, e)
            raise OtpDispatchFailed(str(e) or "Failed to send OTP") from e
        except Exception:
            if generation == self._generation:
                self._state = ChallengeState.FAILED
            logger.exception("OTP dispatch to %s failed unexpectedly", mobile_number)
            raise

        if generation != self._generation:
            logger.info("Dropping dispatch result for reset challenge (%s)", mobile_number)
            raise ChallengeStateError("Challenge was reset while the OTP was being sent")

        if not response.accepted:
            self._state = ChallengeState.FAILED
            logger.warning("OTP dispatch to %s rejected: %s", mobile_number, response.error)
            raise OtpDispatchFailed(response.error or "Failed to send OTP")

        now = self._clock.now()
        self._issued_at = now
        self._expires_at = now + self.ttl_seconds
        self._state = ChallengeState.SENT
        logger.info("OTP sent to %s, expires in %ss", mobile_number, self.ttl_seconds)

    def _apply_expiry(self) -> None:
        if (
            self._state == ChallengeState.SENT
            and self._expires_at is not None
            and self._clock.now() >= self._expires_at
        ):
            self._state = ChallengeState.EXPIRED
            self._code = None
            logger.info("OTP for %s expired", self._mobile_number)

    def _reset(self) -> None:
        self._generation += 1
        self._state = ChallengeState.IDLE
        self._code = None
        self._issued_at = None
        self._expires_at = None
        self._verified_at = None

    def _snapshot(self) -> tuple:
        return (
            self._state,
            self._mobile_number,
            self._code,
            self._issued_at,
            self._expires_at,
            self._verified_at,
        )

    def _restore(self, snapshot: tuple) -> None:
        (
            self._state,
            self._mobile_number,
            self._code,
            self._issued_at,
            self._expires_at,
            self._verified_at,
        ) = snapshot
