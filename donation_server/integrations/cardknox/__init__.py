"""
Card payments via the Cardknox gateway.

Example usage:
    from donation_server.integrations.cardknox import (
        PaymentRequest,
        get_payment_client,
    )

    client = get_payment_client()
    result = await client.charge(PaymentRequest(
        amount="25",
        card_number="4111111111111111",
        expiry="1225",
        cvv="123",
        zip_code="90210",
        phone="+15551234567",
    ))
"""

from donation_server.integrations.cardknox.client import (
    CardknoxClient,
    PaymentOutcome,
    PaymentRequest,
    PaymentResult,
    get_payment_client,
)

__all__ = [
    "CardknoxClient",
    "PaymentOutcome",
    "PaymentRequest",
    "PaymentResult",
    "get_payment_client",
]
