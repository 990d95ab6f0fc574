"""
HTTP signup backend adapter - Implements OtpGateway and AccountGateway.

This module talks to the remote signup backend over JSON/HTTP using a
shared httpx.AsyncClient. The client's base_url points at the backend's
API root (e.g. http://backend:1997/api).

Endpoints:
- POST /signup/send-otp    {mobileNumber}
- POST /signup/verify-otp  {mobileNumber, otp}
- POST /signup/post        {username, password, confirmpassword, age, gender,
                            emailid, mobilenumber,
                            mobilenumbersignupverificationotp}
- GET  /signup/test        (reachability check)

Request failures (connection refused, DNS, timeouts, undecodable bodies)
are raised as GatewayUnavailable. HTTP error statuses are interpreted per
endpoint; only JSON message fields are read, never raw response text.
"""

import logging
from typing import Any

import httpx

from otp_signup.domain.exceptions import GatewayUnavailable
from otp_signup.domain.ports import AccountCreationResponse, DispatchResponse, VerifyResponse
from otp_signup.domain.registration import RegistrationForm

logger = logging.getLogger(__name__)

_GONE_STATUSES = frozenset({404, 410})


def _json_body(response: httpx.Response) -> dict[str, Any]:
    """Parse a JSON object body; anything else yields an empty dict."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class HttpSignupBackend:
    """
    Implements OtpGateway and AccountGateway protocols via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The client is owned by the caller (opened and closed in the app lifespan).
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        """
        Initialize backend with a shared async client.

        Args:
            client: httpx.AsyncClient with base_url set to the API root
        """
        self._client = client

    async def dispatch_otp(self, mobile_number: str) -> DispatchResponse:
        response = await self._request("POST", "/signup/send-otp", {"mobileNumber": mobile_number})
        body = _json_body(response)

        if response.is_success:
            return DispatchResponse(accepted=True)

        error = body.get("message") or f"Failed to send OTP ({response.status_code})"
        return DispatchResponse(accepted=False, error=error)

    async def verify_otp(self, mobile_number: str, code: str) -> VerifyResponse:
        """
        Verify a code with the backend.

        A non-2xx answer mentioning "Invalid OTP" is a wrong code; 404/410 or
        a message mentioning expiry means the backend dropped the challenge.
        Any other error status is treated as the service being unavailable.
        """
        response = await self._request(
            "POST", "/signup/verify-otp", {"mobileNumber": mobile_number, "otp": code}
        )
        body = _json_body(response)
        message = body.get("message")

        if response.is_success:
            return VerifyResponse(verified=bool(body.get("verified", True)), message=message)

        lowered = (message or "").lower()
        if "invalid otp" in lowered:
            return VerifyResponse(verified=False, message=message)
        if response.status_code in _GONE_STATUSES or "expired" in lowered:
            return VerifyResponse(verified=False, message=message, challenge_gone=True)

        raise GatewayUnavailable(
            message or f"OTP verification failed with status {response.status_code}"
        )

    async def create_account(
        self, form: RegistrationForm, otp_code: str
    ) -> AccountCreationResponse:
        payload = {
            "username": form.name.strip(),
            "password": form.password,
            "confirmpassword": form.confirm_password,
            "age": form.age_bracket,
            "gender": form.gender,
            "emailid": form.email.strip().lower(),
            "mobilenumber": form.mobile_number.strip(),
            "mobilenumbersignupverificationotp": otp_code,
        }
        response = await self._request("POST", "/signup/post", payload)
        body = _json_body(response)

        account_id = body.get("accountId", body.get("id"))
        return AccountCreationResponse(
            status_code=response.status_code,
            message=body.get("message"),
            account_id=str(account_id) if account_id is not None else None,
        )

    async def ping(self) -> bool:
        """Return True if the backend answers its test endpoint with 2xx."""
        try:
            response = await self._client.get("/signup/test")
        except httpx.HTTPError as e:
            logger.warning("Signup backend unreachable: %s", e)
            return False
        return response.is_success

    async def _request(self, method: str, path: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise GatewayUnavailable(f"Signup backend unreachable: {e}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response
