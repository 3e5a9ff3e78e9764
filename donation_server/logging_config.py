"""
Structured logging configuration using structlog.

Log lines carry context as keywords and never payment data: callers pass
phone numbers through mask_phone(), and a processor in the chain replaces
any card number, expiry or CVV keyword that reaches it anyway.
"""

import logging
import sys
from typing import Any

import structlog

from donation_server.config import settings

# Keyword names (ours and the gateway's) whose values must never be logged
PAYMENT_FIELDS = frozenset({
    "card_number",
    "expiry",
    "cvv",
    "xCardNum",
    "xExp",
    "xCVV",
})
REDACTED = "[redacted]"


def redact_payment_fields(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor replacing payment field values."""
    for key in PAYMENT_FIELDS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    Uses structlog with JSON or console output based on settings. Payment
    fields are redacted before any renderer sees the event.
    """
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            redact_payment_fields,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured structlog logger

    Example:
        logger = get_logger(__name__)
        logger.info("sms_step_advanced", phone=mask_phone(sender), step="awaiting_card")
    """
    return structlog.get_logger(name)


def mask_phone(phone: str | None) -> str | None:
    """Last four digits of a phone number, for log context."""
    if not phone:
        return None
    return phone[-4:]
