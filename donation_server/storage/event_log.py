"""
Event log of recent donation flow steps.

A fixed-size ring buffer of step transitions and validation/payment errors,
exposed through the authenticated diagnostics endpoint. Card numbers,
expiry dates and CVVs are redacted before they are stored.
"""

from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from donation_server.config import settings
from donation_server.logging_config import get_logger

logger = get_logger(__name__)


# Steps whose raw input is a payment field, and how to redact it
_CARD_STEPS = {"awaiting_card", "process-cc"}
_SECRET_STEPS = {"awaiting_expiry", "awaiting_cvv", "process-exp", "process-cvv"}


def redact(step: str, data: str | None) -> str | None:
    """
    Redact raw step input for storage.

    Card numbers keep their last four digits, expiry and CVV are fully
    masked, everything else is stored as received.
    """
    if not data:
        return data

    if step in _CARD_STEPS:
        if len(data) <= 4:
            return "*" * len(data)
        return "*" * (len(data) - 4) + data[-4:]

    if step in _SECRET_STEPS:
        return "*" * len(data)

    return data


@dataclass
class EventLogEntry:
    """A single logged step."""
    timestamp: datetime
    correlation_id: str | None
    step: str
    data: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        entry = asdict(self)
        entry["timestamp"] = self.timestamp.isoformat()
        return entry


class EventLog:
    """
    Append-only ring buffer, oldest entries evicted first.

    Example:
        event_log = EventLog(capacity=100)
        event_log.append("+15551234567", "process-zip", "90210")
        event_log.entries()  # oldest first
    """

    def __init__(self, capacity: int | None = None, redact_payment_data: bool | None = None):
        self.capacity = capacity or settings.event_log_capacity
        self.redact_payment_data = (
            settings.event_log_redact if redact_payment_data is None else redact_payment_data
        )
        self._entries: deque[EventLogEntry] = deque(maxlen=self.capacity)

    def append(
        self,
        correlation_id: str | None,
        step: str,
        data: str | None = None,
        error: str | None = None,
    ) -> None:
        """
        Record a step.

        Never raises: the event log is diagnostics only and must not get in
        the way of replying to the caller.
        """
        try:
            if self.redact_payment_data:
                data = redact(step, data)
            self._entries.append(EventLogEntry(
                timestamp=datetime.utcnow(),
                correlation_id=correlation_id,
                step=step,
                data=data,
                error=error,
            ))
        except Exception as e:
            logger.warning("event_log_append_failed", step=step, error=str(e))

    def entries(self) -> list[EventLogEntry]:
        """All entries in insertion order."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# Global event log instance
event_log = EventLog()
