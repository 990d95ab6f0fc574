"""
Registration sessions - In-memory registry of in-flight signups.

Each session pairs one OtpChallenge with the form being filled in. A session
lives from the first API call of a signup until it succeeds, is cancelled,
or goes unused for idle_seconds. Idle sessions are dropped on the next
create() or get(), so abandoned signups do not accumulate.
"""

import logging
import uuid
from dataclasses import dataclass, field

from otp_signup.domain.otp import OTP_TTL_SECONDS, SUBMISSION_GRACE_SECONDS, OtpChallenge
from otp_signup.domain.ports import Clock, OtpGateway
from otp_signup.domain.registration import RegistrationForm

logger = logging.getLogger(__name__)

SESSION_IDLE_SECONDS = 300  # Longer than one OTP window plus the submission window


@dataclass
class RegistrationSession:
    """One in-flight signup."""

    session_id: str
    challenge: OtpChallenge
    last_used: float
    form: RegistrationForm = field(default_factory=RegistrationForm)


class RegistrationSessions:
    """Creates, finds and closes registration sessions."""

    def __init__(
        self,
        otp_gateway: OtpGateway,
        clock: Clock,
        ttl_seconds: float = OTP_TTL_SECONDS,
        grace_seconds: float = SUBMISSION_GRACE_SECONDS,
        idle_seconds: float = SESSION_IDLE_SECONDS,
    ) -> None:
        self._otp_gateway = otp_gateway
        self._clock = clock
        self._ttl_seconds = ttl_seconds
        self._grace_seconds = grace_seconds
        self._idle_seconds = idle_seconds
        self._sessions: dict[str, RegistrationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> RegistrationSession:
        self._evict_idle()
        challenge = OtpChallenge(
            gateway=self._otp_gateway,
            clock=self._clock,
            ttl_seconds=self._ttl_seconds,
            grace_seconds=self._grace_seconds,
        )
        session = RegistrationSession(
            session_id=uuid.uuid4().hex, challenge=challenge, last_used=self._clock.now()
        )
        self._sessions[session.session_id] = session
        logger.info("Registration session %s opened", session.session_id)
        return session

    def get(self, session_id: str) -> RegistrationSession | None:
        """Return the session and mark it used, or None if unknown or idle too long."""
        self._evict_idle()
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_used = self._clock.now()
        return session

    def close(self, session_id: str) -> bool:
        """
        Drop a session, discarding its challenge and clearing its form.

        Returns:
            True if the session existed
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.challenge.discard()
        session.form.clear()
        logger.info("Registration session %s closed", session_id)
        return True

    def _evict_idle(self) -> None:
        cutoff = self._clock.now() - self._idle_seconds
        idle = [sid for sid, s in self._sessions.items() if s.last_used <= cutoff]
        for session_id in idle:
            logger.info("Registration session %s idle, dropping", session_id)
            self.close(session_id)
