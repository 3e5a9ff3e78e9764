"""
Unit tests for the SMS session store.
"""

from datetime import datetime, timedelta

from donation_server.flows.constants import SMSStep
from donation_server.storage import DonationSession, SessionStore


class TestDonationSession:
    """Tests for DonationSession."""

    def test_defaults(self):
        session = DonationSession(sender="+15551234567")

        assert session.step == SMSStep.AWAITING_AMOUNT
        assert session.amount is None
        assert session.is_expired(30) is False

    def test_is_expired(self):
        session = DonationSession(sender="+15551234567")
        session.updated_at = datetime.utcnow() - timedelta(minutes=31)

        assert session.is_expired(30) is True
        assert session.is_expired(60) is False

    def test_repr_hides_payment_fields(self):
        session = DonationSession(
            sender="+15551234567",
            card_number="4111111111111111",
            expiry="1225",
            cvv="987",
        )

        text = repr(session)
        assert "4111111111111111" not in text
        assert "987" not in text


class TestSessionStore:
    """Tests for SessionStore."""

    def test_get_missing(self, session_store):
        assert session_store.get("+15551234567") is None
        assert "+15551234567" not in session_store

    def test_save_and_get(self, session_store):
        session = DonationSession(sender="+15551234567", amount="10")
        session_store.save(session)

        assert session_store.get("+15551234567") is session
        assert "+15551234567" in session_store
        assert len(session_store) == 1

    def test_save_touches(self, session_store):
        session = DonationSession(sender="+15551234567")
        session.updated_at = datetime.utcnow() - timedelta(minutes=29)

        session_store.save(session)

        assert datetime.utcnow() - session.updated_at < timedelta(minutes=1)

    def test_expired_session_dropped(self):
        store = SessionStore(timeout_minutes=5)
        session = DonationSession(sender="+15551234567")
        store.save(session)
        session.updated_at = datetime.utcnow() - timedelta(minutes=6)

        assert store.get("+15551234567") is None
        assert len(store) == 0

    def test_delete(self, session_store):
        session_store.save(DonationSession(sender="+15551234567"))

        assert session_store.delete("+15551234567") is True
        assert session_store.delete("+15551234567") is False
        assert session_store.get("+15551234567") is None

    def test_clear(self, session_store):
        session_store.save(DonationSession(sender="+15551234567"))
        session_store.save(DonationSession(sender="+15559876543"))

        session_store.clear()

        assert len(session_store) == 0

    def test_save_sweeps_abandoned_sessions(self, session_store):
        abandoned = []
        for i in range(1000):
            session = DonationSession(
                sender=f"+1555000{i:04d}",
                step=SMSStep.AWAITING_ZIP,
                amount="25",
                card_number="4111111111111111",
                expiry="1225",
                cvv="123",
            )
            session_store.save(session)
            abandoned.append(session)

        assert len(session_store) == 1000
        for session in abandoned:
            session.updated_at = datetime.utcnow() - timedelta(days=7)

        session_store.save(DonationSession(sender="+15551234567", amount="10"))

        assert len(session_store) == 1
        assert session_store.get("+15551234567").amount == "10"

    def test_purge_expired_keeps_active(self):
        store = SessionStore(timeout_minutes=5)
        active = DonationSession(sender="+15551234567")
        idle = DonationSession(sender="+15559876543")
        store.save(active)
        store.save(idle)
        idle.updated_at = datetime.utcnow() - timedelta(minutes=6)

        assert store.purge_expired() == 1
        assert len(store) == 1
        assert store.get("+15551234567") is active
