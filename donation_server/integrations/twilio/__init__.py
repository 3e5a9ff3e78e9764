"""
SMS and voice webhooks via Twilio.

This module provides:
- Webhook parsing: turn Twilio form posts into structured events
- Signature validation for incoming webhooks

Replies are TwiML documents built with twilio.twiml in the flows and
routes.
"""

from donation_server.integrations.twilio.message_parser import (
    ParsedSMS,
    ParsedVoiceEvent,
    parse_sms_webhook,
    parse_voice_webhook,
)
from donation_server.integrations.twilio.request_validation import (
    public_url,
    validate_webhook_signature,
)

__all__ = [
    "ParsedSMS",
    "ParsedVoiceEvent",
    "parse_sms_webhook",
    "parse_voice_webhook",
    "public_url",
    "validate_webhook_signature",
]
