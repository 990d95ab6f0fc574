"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A manually driven clock (deterministic expiry)
- Mock OTP gateways
- A ready-made OTP challenge
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from otp_signup.domain.otp import OtpChallenge
from otp_signup.domain.ports import DispatchResponse, VerifyResponse


class ManualClock:
    """Clock that only moves when told to. sleep() advances it."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds
        await asyncio.sleep(0)


class BlockingOtpGateway:
    """OTP gateway whose calls hang until released, for in-flight tests."""

    def __init__(
        self,
        dispatch_response: DispatchResponse | None = None,
        verify_response: VerifyResponse | None = None,
    ) -> None:
        self.release = asyncio.Event()
        self.dispatch_calls: list[str] = []
        self.verify_calls: list[tuple[str, str]] = []
        self._dispatch_response = dispatch_response or DispatchResponse(accepted=True)
        self._verify_response = verify_response or VerifyResponse(verified=True)

    async def dispatch_otp(self, mobile_number: str) -> DispatchResponse:
        self.dispatch_calls.append(mobile_number)
        await self.release.wait()
        return self._dispatch_response

    async def verify_otp(self, mobile_number: str, code: str) -> VerifyResponse:
        self.verify_calls.append((mobile_number, code))
        await self.release.wait()
        return self._verify_response


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def otp_gateway() -> AsyncMock:
    """OTP gateway that accepts every dispatch and verifies every code."""
    gateway = AsyncMock()
    gateway.dispatch_otp.return_value = DispatchResponse(accepted=True)
    gateway.verify_otp.return_value = VerifyResponse(verified=True, message="Verified")
    return gateway


@pytest.fixture
def challenge(otp_gateway: AsyncMock, clock: ManualClock) -> OtpChallenge:
    return OtpChallenge(gateway=otp_gateway, clock=clock)


@pytest.fixture
def blocking_gateway() -> BlockingOtpGateway:
    return BlockingOtpGateway()
