"""
Donation Flow Processing Module.

This module provides the two step machines that collect a donation:

- SMS: one question per text message, state kept in the session store
- Voice (IVR): keypad input, state carried in callback addresses

Usage:
    from donation_server.flows.sms_processor import SMSProcessor
    from donation_server.flows.ivr_processor import IVRProcessor

    processor = SMSProcessor(session_store, get_payment_client(), event_log)
    response = await processor.process("+15551234567", "$25")
"""

from donation_server.flows.call_context import CallContext, InvalidCallContext
from donation_server.flows.constants import (
    IVRStep,
    SMSStep,
)
from donation_server.flows.validators import ValidationResult

__all__ = [
    "CallContext",
    "InvalidCallContext",
    "IVRStep",
    "SMSStep",
    "ValidationResult",
]
