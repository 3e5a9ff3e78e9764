"""
Parse incoming Twilio SMS and voice webhook payloads.

This module handles parsing of Twilio webhook payloads into structured
objects that the donation flows can process.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from donation_server.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ParsedSMS:
    """
    Structured representation of an incoming SMS.

    Attributes:
        message_sid: Unique Twilio message ID
        phone_number: Sender's phone number (correlation key)
        body: Text content of the message, trimmed
        timestamp: When the message was received
    """
    message_sid: str
    phone_number: str
    body: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ParsedVoiceEvent:
    """
    Structured representation of a voice (Gather / Redirect) callback.

    Attributes:
        call_sid: Twilio call ID
        caller: Caller phone number
        digits: Keypad digits gathered, empty on timeout or redirect
    """
    call_sid: str | None
    caller: str | None
    digits: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


def _extract_phone_number(raw_phone: str) -> str:
    """
    Extract clean phone number from Twilio format.

    Args:
        raw_phone: Phone in format "+15551234567" or "whatsapp:+15551234567"

    Returns:
        Clean phone number: "+15551234567"
    """
    if raw_phone.startswith("whatsapp:"):
        return raw_phone[9:]
    return raw_phone


def parse_sms_webhook(payload: dict[str, Any]) -> ParsedSMS:
    """
    Parse a Twilio SMS webhook payload.

    Args:
        payload: Dictionary from Twilio webhook (form data)

    Returns:
        ParsedSMS object

    Example payload:
        {
            "MessageSid": "SMxxxxxxxx",
            "From": "+15551234567",
            "To": "+15557654321",
            "Body": "$25",
            "NumMedia": "0",
            ...
        }
    """
    parsed = ParsedSMS(
        message_sid=payload.get("MessageSid", payload.get("SmsSid", "unknown")),
        phone_number=_extract_phone_number(payload.get("From", "")),
        body=(payload.get("Body") or "").strip(),
    )

    logger.debug(
        "sms_webhook_parsed",
        message_sid=parsed.message_sid,
        body_length=len(parsed.body),
    )

    return parsed


def parse_voice_webhook(
    payload: dict[str, Any],
    query: dict[str, Any] | None = None,
    digits_from_query: bool = False,
) -> ParsedVoiceEvent:
    """
    Parse a Twilio voice callback.

    Args:
        payload: Form data posted by Twilio
        query: Query parameters of the callback address
        digits_from_query: Fall back to a Digits query parameter when the
            form has none (redirects carry digits in the address)

    Returns:
        ParsedVoiceEvent object
    """
    digits = payload.get("Digits") or ""
    if not digits and digits_from_query and query:
        digits = query.get("Digits") or ""

    caller = payload.get("From") or payload.get("Caller") or None

    return ParsedVoiceEvent(
        call_sid=payload.get("CallSid") or None,
        caller=_extract_phone_number(caller) if caller else None,
        digits=digits,
    )
