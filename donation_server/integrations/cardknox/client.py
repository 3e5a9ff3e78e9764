"""
Cardknox gateway client.

Submits a single card sale to the Cardknox JSON gateway and classifies the
result. The client never retries and never raises to its callers: a retry
is the donor re-entering card details, decided by the flow above.

Usage:
    >>> client = get_payment_client()
    >>> result = await client.charge(PaymentRequest(amount="25", ...))
    >>> result.approved, result.reference_number
"""

import re
from dataclasses import dataclass, field
from enum import Enum

import httpx

from donation_server.config import settings
from donation_server.logging_config import get_logger, mask_phone

logger = get_logger(__name__)

APPROVED_RESULT = "A"


class PaymentOutcome(str, Enum):
    """Classified gateway outcome."""
    APPROVED = "approved"
    DECLINED = "declined"
    INVALID_RESPONSE = "invalid_response"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class PaymentRequest:
    """Fields of a card sale."""
    amount: str
    card_number: str = field(repr=False)
    expiry: str = field(repr=False)
    cvv: str = field(repr=False)
    zip_code: str
    phone: str = ""


@dataclass
class PaymentResult:
    """
    Result of a gateway call.

    Attributes:
        outcome: Classified outcome
        reference_number: Gateway reference (xRefNum), when returned
        status: Raw xResult / xStatus from the gateway
        error: Gateway or transport error description
    """
    outcome: PaymentOutcome
    reference_number: str | None = None
    status: str | None = None
    error: str | None = None

    @property
    def approved(self) -> bool:
        return self.outcome == PaymentOutcome.APPROVED

    @property
    def transport_error(self) -> bool:
        return self.outcome == PaymentOutcome.TRANSPORT_ERROR


class CardknoxClient:
    """
    Client for the Cardknox JSON gateway.

    Client identification (key, version, software name) comes from
    settings; callers only supply transaction fields.

    Example:
        client = CardknoxClient()
        result = await client.charge(request)
        if result.approved:
            ...
    """

    def __init__(
        self,
        api_key: str | None = None,
        gateway_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the gateway client.

        Args:
            api_key: Cardknox xKey (defaults to settings)
            gateway_url: Gateway endpoint (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.api_key = api_key if api_key is not None else settings.cardknox_api_key
        self.gateway_url = gateway_url or settings.cardknox_gateway_url
        self.timeout = timeout or settings.cardknox_timeout_seconds
        self._transport = transport

        if not self.api_key:
            logger.warning(
                "cardknox_credentials_missing",
                message="Cardknox API key not configured. Charges will be declined."
            )

    @property
    def is_configured(self) -> bool:
        """Check if the client has an API key."""
        return bool(self.api_key)

    def build_payload(self, request: PaymentRequest) -> dict[str, str]:
        """Gateway JSON body for a sale."""
        return {
            "xKey": self.api_key,
            "xVersion": settings.cardknox_version,
            "xSoftwareVersion": settings.cardknox_software_version,
            "xSoftwareName": settings.cardknox_software_name,
            "xCommand": settings.cardknox_command,
            "xAmount": request.amount,
            "xCardNum": request.card_number,
            "xExp": request.expiry,
            "xCVV": request.cvv,
            "xZip": request.zip_code,
            "xPhone": re.sub(r"[^0-9]", "", request.phone or ""),
        }

    async def charge(self, request: PaymentRequest) -> PaymentResult:
        """
        Submit a card sale.

        Args:
            request: Transaction fields

        Returns:
            PaymentResult; transport failures and unparseable bodies are
            reported through the outcome, not raised
        """
        logger.info(
            "cardknox_charge_started",
            amount=request.amount,
            phone=mask_phone(request.phone),
            card_last_four=request.card_number[-4:],
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.gateway_url,
                    json=self.build_payload(request),
                )
        except httpx.HTTPError as e:
            logger.error(
                "cardknox_transport_error",
                error=str(e),
                error_type=type(e).__name__,
                phone=mask_phone(request.phone),
            )
            return PaymentResult(
                outcome=PaymentOutcome.TRANSPORT_ERROR,
                error=str(e) or type(e).__name__,
            )

        return self._parse_response(response, request)

    def _parse_response(
        self, response: httpx.Response, request: PaymentRequest
    ) -> PaymentResult:
        """Classify a gateway response."""
        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "cardknox_invalid_response",
                status_code=response.status_code,
                error=str(e),
            )
            return PaymentResult(
                outcome=PaymentOutcome.INVALID_RESPONSE,
                error="Unparseable gateway response",
            )

        if not isinstance(data, dict):
            logger.error("cardknox_invalid_response", status_code=response.status_code)
            return PaymentResult(
                outcome=PaymentOutcome.INVALID_RESPONSE,
                error="Unexpected gateway response shape",
            )

        result_code = data.get("xResult")
        reference = data.get("xRefNum") or None

        if result_code == APPROVED_RESULT:
            logger.info(
                "cardknox_charge_approved",
                amount=request.amount,
                reference_number=reference,
                phone=mask_phone(request.phone),
            )
            return PaymentResult(
                outcome=PaymentOutcome.APPROVED,
                reference_number=reference,
                status=data.get("xStatus") or result_code,
            )

        logger.warning(
            "cardknox_charge_declined",
            result=result_code,
            status=data.get("xStatus"),
            error=data.get("xError"),
            reference_number=reference,
            phone=mask_phone(request.phone),
        )
        return PaymentResult(
            outcome=PaymentOutcome.DECLINED,
            reference_number=reference,
            status=data.get("xStatus") or result_code,
            error=data.get("xError"),
        )


# Global client instance (lazy initialization)
_payment_client: CardknoxClient | None = None


def get_payment_client() -> CardknoxClient:
    """
    Get or create the global Cardknox client instance.

    Returns:
        CardknoxClient instance
    """
    global _payment_client
    if _payment_client is None:
        _payment_client = CardknoxClient()
    return _payment_client
