"""
FastAPI dependencies for dependency injection.

Provides the shared flow processors, webhook authentication and the admin
guard for the diagnostics endpoints.
"""

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from donation_server.config import settings
from donation_server.flows.ivr_processor import CallTracker, IVRProcessor
from donation_server.flows.sms_processor import SMSProcessor
from donation_server.integrations.cardknox import get_payment_client
from donation_server.integrations.twilio import public_url, validate_webhook_signature
from donation_server.logging_config import get_logger
from donation_server.storage import EventLog, event_log, session_store

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Flow Processors
# ─────────────────────────────────────────────────────────────────────────────

_call_tracker = CallTracker()


def get_event_log() -> EventLog:
    """Dependency returning the process-wide event log."""
    return event_log


def get_sms_processor() -> SMSProcessor:
    """
    Dependency to get the SMS processor.

    Returns:
        SMSProcessor bound to the global session store and event log
    """
    return SMSProcessor(session_store, get_payment_client(), event_log)


def get_ivr_processor() -> IVRProcessor:
    """
    Dependency to get the IVR processor.

    Returns:
        IVRProcessor sharing one call tracker across requests
    """
    return IVRProcessor(get_payment_client(), event_log, tracker=_call_tracker)


SMSFlow = Annotated[SMSProcessor, Depends(get_sms_processor)]
IVRFlow = Annotated[IVRProcessor, Depends(get_ivr_processor)]
Events = Annotated[EventLog, Depends(get_event_log)]


# ─────────────────────────────────────────────────────────────────────────────
# Twilio Signature Validation
# ─────────────────────────────────────────────────────────────────────────────

async def validate_twilio_signature(
    request: Request,
    x_twilio_signature: Annotated[str | None, Header()] = None,
) -> bool:
    """
    Validate incoming Twilio webhook signature.

    In development mode, signature validation can be skipped.
    In production, invalid signatures raise 403.

    Args:
        request: FastAPI request object
        x_twilio_signature: Twilio signature header

    Returns:
        True if valid (or validation skipped)

    Raises:
        HTTPException: 403 if signature invalid in production
    """
    if settings.environment == "development" and not settings.twilio_auth_token:
        logger.warning(
            "twilio_signature_validation_skipped",
            reason="Development mode, no auth token"
        )
        return True

    if not x_twilio_signature:
        if settings.environment == "production":
            logger.warning("twilio_missing_signature")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Missing Twilio signature"
            )
        return True

    path_and_query = request.url.path
    if request.url.query:
        path_and_query = f"{path_and_query}?{request.url.query}"
    url = public_url(str(request.url), path_and_query)

    form_data = await request.form()
    params = {key: value for key, value in form_data.items()}

    is_valid = validate_webhook_signature(url, params, x_twilio_signature)

    if not is_valid and settings.environment == "production":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid Twilio signature"
        )

    return is_valid


# ─────────────────────────────────────────────────────────────────────────────
# Admin Authentication
# ─────────────────────────────────────────────────────────────────────────────

def require_admin_key(
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """
    Guard for diagnostics endpoints.

    The event log holds caller numbers and step data, so it is closed
    unless an admin key is configured and presented.

    Raises:
        HTTPException: 403 if no key is configured or the header is wrong
    """
    if not settings.admin_api_key:
        logger.warning("admin_endpoint_disabled", reason="No admin key configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Diagnostics are disabled"
        )

    if not x_admin_key or not secrets.compare_digest(
        x_admin_key.encode("utf-8"), settings.admin_api_key.encode("utf-8")
    ):
        logger.warning("admin_invalid_key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin key"
        )
