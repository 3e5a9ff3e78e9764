"""
Twilio webhook signature validation.

Wraps twilio's RequestValidator so every webhook route checks the
X-Twilio-Signature header the same way.
"""

from typing import Any

from twilio.request_validator import RequestValidator

from donation_server.config import settings
from donation_server.logging_config import get_logger

logger = get_logger(__name__)


def public_url(request_url: str, path_and_query: str) -> str:
    """
    URL Twilio signed.

    Behind a proxy or tunnel the app sees its internal address, so when
    webhook_base_url is configured the signature is checked against it.
    """
    if settings.webhook_base_url:
        return f"{settings.webhook_base_url.rstrip('/')}{path_and_query}"
    return request_url


def validate_webhook_signature(
    url: str,
    params: dict[str, Any],
    signature: str,
    auth_token: str | None = None,
) -> bool:
    """
    Validate Twilio webhook request signature.

    Args:
        url: Full webhook URL, including the query string
        params: Request parameters (form data)
        signature: X-Twilio-Signature header value
        auth_token: Twilio auth token (defaults to settings)

    Returns:
        True if signature is valid
    """
    token = auth_token if auth_token is not None else settings.twilio_auth_token
    if not token:
        logger.warning("twilio_signature_validation_skipped", reason="No auth token")
        return True

    is_valid = RequestValidator(token).validate(url, params, signature)

    if not is_valid:
        logger.warning(
            "twilio_invalid_signature",
            url=url,
            received=signature[:10] + "...",
        )

    return is_valid
