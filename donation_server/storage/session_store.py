"""
In-memory SMS donation sessions.

One session per sender phone number, holding the fields collected so far
and the step the conversation is waiting on. Sessions live only for the
lifetime of the process.

Access is not locked: the server runs a single event loop and Twilio
delivers one message per conversation at a time, so only one step for a
given sender executes at once. A multi-worker deployment would need
per-sender locking or a shared store.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from donation_server.config import settings
from donation_server.flows.constants import SMSStep
from donation_server.logging_config import get_logger, mask_phone

logger = get_logger(__name__)


@dataclass
class DonationSession:
    """
    SMS donation session state.

    Payment fields are excluded from repr so a session never lands in a
    log line by accident.
    """
    sender: str
    step: SMSStep = SMSStep.AWAITING_AMOUNT

    # Collected fields, filled in step order
    amount: str | None = None
    card_number: str | None = field(default=None, repr=False)
    expiry: str | None = field(default=None, repr=False)
    cvv: str | None = field(default=None, repr=False)
    zip_code: str | None = None

    # Timestamps
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = datetime.utcnow()

    def is_expired(self, timeout_minutes: int | None = None) -> bool:
        """Check if the session has been idle longer than the timeout."""
        if timeout_minutes is None:
            timeout_minutes = settings.sms_session_timeout_minutes
        return datetime.utcnow() - self.updated_at > timedelta(minutes=timeout_minutes)


class SessionStore:
    """
    Dictionary-backed session store keyed by sender phone number.

    Expired sessions are dropped on read, so an abandoned conversation
    restarts at the amount prompt, and every save sweeps out other senders'
    expired sessions so abandoned card details do not stay in memory.
    """

    def __init__(self, timeout_minutes: int | None = None):
        self._sessions: dict[str, DonationSession] = {}
        self._timeout_minutes = (
            timeout_minutes
            if timeout_minutes is not None
            else settings.sms_session_timeout_minutes
        )

    def get(self, sender: str) -> DonationSession | None:
        """
        Get the active session for a sender.

        Args:
            sender: Sender phone number

        Returns:
            DonationSession or None if absent or expired
        """
        session = self._sessions.get(sender)
        if session is None:
            return None

        if session.is_expired(self._timeout_minutes):
            logger.info("sms_session_expired", phone=mask_phone(sender), step=session.step.value)
            del self._sessions[sender]
            return None

        return session

    def save(self, session: DonationSession) -> None:
        """Store (or replace) the session for its sender."""
        session.touch()
        self._sessions[session.sender] = session
        self.purge_expired()

    def purge_expired(self) -> int:
        """
        Drop every expired session.

        Returns:
            Number of sessions removed
        """
        expired = [
            sender
            for sender, session in self._sessions.items()
            if session.is_expired(self._timeout_minutes)
        ]
        for sender in expired:
            del self._sessions[sender]

        if expired:
            logger.info("sms_sessions_purged", count=len(expired), remaining=len(self._sessions))

        return len(expired)

    def delete(self, sender: str) -> bool:
        """
        Remove a sender's session.

        Returns:
            True if a session was removed
        """
        return self._sessions.pop(sender, None) is not None

    def clear(self) -> None:
        """Drop every session."""
        self._sessions.clear()

    def __contains__(self, sender: str) -> bool:
        return self.get(sender) is not None

    def __len__(self) -> int:
        return len(self._sessions)


# Global store instance
session_store = SessionStore()
