"""
FastAPI dependencies - Dependency injection factories.

This module wires domain services onto app.state and provides Depends()
factories for injecting them into routes.
"""

from fastapi import Depends, FastAPI, HTTPException, Request, status

from otp_signup.api.sessions import RegistrationSession, RegistrationSessions
from otp_signup.config.settings import Settings
from otp_signup.domain.duplicates import DuplicateAccountChecker
from otp_signup.domain.ports import (
    AccountGateway,
    AccountRegistry,
    Clock,
    OtpGateway,
    UserDirectory,
)
from otp_signup.domain.registration import RegistrationOrchestrator


def install_services(
    app: FastAPI,
    settings: Settings,
    otp_gateway: OtpGateway,
    account_gateway: AccountGateway,
    directory: UserDirectory,
    clock: Clock,
    account_registry: AccountRegistry | None = None,
) -> None:
    """
    Build the domain services and store them in app.state.

    Called from the lifespan on startup, and directly by tests with
    in-memory adapters. account_registry is set when accounts are created
    by a remote backend and must be mirrored into the local directory.
    """
    app.state.sessions = RegistrationSessions(
        otp_gateway=otp_gateway,
        clock=clock,
        ttl_seconds=settings.otp_ttl_seconds,
        grace_seconds=settings.submission_grace_seconds,
        idle_seconds=settings.session_idle_seconds,
    )
    app.state.countdown_interval = settings.countdown_interval_seconds
    app.state.duplicate_checker = DuplicateAccountChecker(directory=directory)
    app.state.orchestrator = RegistrationOrchestrator(
        accounts=account_gateway,
        allowed_email_domains=tuple(settings.allowed_email_domains),
        registry=account_registry,
    )


def get_sessions(request: Request) -> RegistrationSessions:
    """Get the session registry from app state."""
    return request.app.state.sessions


def get_orchestrator(request: Request) -> RegistrationOrchestrator:
    """Get the registration orchestrator from app state."""
    return request.app.state.orchestrator


def get_duplicate_checker(request: Request) -> DuplicateAccountChecker:
    """Get the duplicate account checker from app state."""
    return request.app.state.duplicate_checker


def get_countdown_interval(request: Request) -> float:
    """Get the countdown tick interval in seconds from app state."""
    return request.app.state.countdown_interval


def get_session(
    session_id: str,
    sessions: RegistrationSessions = Depends(get_sessions),
) -> RegistrationSession:
    """
    Resolve the session named in the path.

    Raises:
        HTTPException: 404 if the session is unknown or already closed
    """
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration session not found",
        )
    return session
