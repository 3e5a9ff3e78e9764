"""
In-process state for the donation flows.

This module provides:
- SMS session store keyed by sender phone number
- Capped event log of recent steps for diagnostics
"""

from donation_server.storage.event_log import (
    EventLog,
    EventLogEntry,
    event_log,
    redact,
)
from donation_server.storage.session_store import (
    DonationSession,
    SessionStore,
    session_store,
)

__all__ = [
    "DonationSession",
    "SessionStore",
    "session_store",
    "EventLog",
    "EventLogEntry",
    "event_log",
    "redact",
]
