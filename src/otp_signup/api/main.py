"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routes and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from otp_signup.adapters.clock import SystemClock
from otp_signup.adapters.directory import InMemoryAccountStore, PostgresAccountStore, run_migrations
from otp_signup.adapters.http import HttpSignupBackend
from otp_signup.adapters.sms.console import ConsoleOtpGateway
from otp_signup.api.dependencies import install_services
from otp_signup.api.v1 import router as v1_router
from otp_signup.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "OTP-gated signup API v1 - Verify a mobile number and create an account",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations (if configured)
    - Opens the signup backend HTTP client (if configured); accounts it
      creates are mirrored into the local store for duplicate checks
    - Wires domain services into app state
    - Closes the HTTP client and pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    pool = None
    if settings.database_url:
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=True,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        accounts = PostgresAccountStore(pool, bcrypt_cost=settings.bcrypt_cost)
    else:
        logger.info("No database configured, using in-memory account store")
        accounts = InMemoryAccountStore(bcrypt_cost=settings.bcrypt_cost)

    http_client = None
    backend = None
    if settings.backend_base_url:
        logger.info("Using signup backend at %s", settings.backend_base_url)
        http_client = httpx.AsyncClient(
            base_url=settings.backend_base_url,
            timeout=settings.http_timeout_seconds,
            headers={"Accept": "application/json"},
        )
        backend = HttpSignupBackend(http_client)
        otp_gateway = backend
        account_gateway = backend
        account_registry = accounts
    else:
        logger.info("No signup backend configured, OTPs will be logged to console")
        otp_gateway = ConsoleOtpGateway()
        account_gateway = accounts
        account_registry = None

    install_services(
        app,
        settings=settings,
        otp_gateway=otp_gateway,
        account_gateway=account_gateway,
        directory=accounts,
        clock=SystemClock(),
        account_registry=account_registry,
    )
    app.state.pool = pool
    app.state.backend = backend

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if http_client is not None:
        await http_client.aclose()
        logger.info("Signup backend client closed")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="otp-signup",
    description="OTP-gated signup API - Mobile number verification, duplicate "
    "detection and password strength feedback in front of account creation",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with dependency validation.

    Returns 200 OK if the application and its configured dependencies
    (database, signup backend) are reachable.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    backend = getattr(request.app.state, "backend", None)
    if backend is not None and not await backend.ping():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Signup backend unreachable",
        )

    return {"status": "healthy"}
