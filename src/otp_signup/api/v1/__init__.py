"""
API v1 package.

Contains versioned API routes for the OTP-gated signup API.
"""

from otp_signup.api.v1.routes import router

__all__ = ["router"]
