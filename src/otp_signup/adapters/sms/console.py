"""
Console OTP gateway adapter - Implements OtpGateway protocol.

This module provides a console-based implementation of the domain's
OTP gateway port, logging one-time passwords instead of sending SMS.
"""

import logging
import secrets

from otp_signup.domain.ports import DispatchResponse, VerifyResponse

logger = logging.getLogger(__name__)


class ConsoleOtpGateway:
    """
    Implements OtpGateway protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - logs codes and checks them in memory.
    Expiry is enforced by the OtpChallenge, not here.
    """

    def __init__(self) -> None:
        self._codes: dict[str, str] = {}

    async def dispatch_otp(self, mobile_number: str) -> DispatchResponse:
        """
        Generate a code for the number and log it (simulates SMS delivery).

        A new dispatch replaces any code issued earlier for the same number.
        """
        code = self._generate_code()
        self._codes[mobile_number] = code
        logger.info("[OTP] Mobile: %s Code: %s", mobile_number, code)
        return DispatchResponse(accepted=True)

    async def verify_otp(self, mobile_number: str, code: str) -> VerifyResponse:
        """
        Compare the code against the last one issued for the number.

        Uses constant-time comparison. A matching code is consumed.
        """
        issued = self._codes.get(mobile_number)
        if issued is None:
            return VerifyResponse(
                verified=False, message="No OTP issued for this number", challenge_gone=True
            )
        if not secrets.compare_digest(issued.encode(), code.encode()):
            return VerifyResponse(verified=False, message="Invalid OTP")

        del self._codes[mobile_number]
        return VerifyResponse(verified=True, message="Mobile number verified")

    def _generate_code(self) -> str:
        """
        Generate cryptographically secure 6-digit code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(6))
