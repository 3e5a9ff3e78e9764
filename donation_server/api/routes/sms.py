"""
Twilio SMS webhook endpoint.

Each inbound text advances the sender's donation by one step. The reply is
returned inline as TwiML, after the card charge when the message completes
the flow. This module should NOT contain business logic.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, Response
from twilio.twiml.messaging_response import MessagingResponse

from donation_server.api.deps import SMSFlow, validate_twilio_signature
from donation_server.flows.constants import SMS_FAILURE_MESSAGE
from donation_server.integrations.twilio import parse_sms_webhook
from donation_server.logging_config import get_logger, mask_phone

logger = get_logger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


def twiml_message(body: str) -> Response:
    """Wrap a single reply in a TwiML <Message>."""
    response = MessagingResponse()
    response.message(body)
    return Response(content=str(response), media_type="text/xml")


@router.post("/sms")
async def sms_webhook(
    request: Request,
    processor: SMSFlow,
    # Twilio webhook fields (form-encoded)
    From: Annotated[str, Form()],
    Body: Annotated[str, Form()] = "",
    MessageSid: Annotated[str, Form()] = "",
    # Signature validation
    _signature_valid: bool = Depends(validate_twilio_signature),
):
    """
    Twilio SMS webhook endpoint.

    Form Parameters (from Twilio):
        From: Sender phone number
        Body: Message text content
        MessageSid: Unique message identifier
    """
    form_data = await request.form()
    message = parse_sms_webhook({key: value for key, value in form_data.items()})

    logger.info(
        "sms_webhook_received",
        message_sid=message.message_sid,
        phone=mask_phone(message.phone_number),
    )

    try:
        result = await processor.process(message.phone_number, message.body)
    except Exception as e:
        logger.error(
            "sms_webhook_error",
            message_sid=message.message_sid,
            error=str(e),
            exc_info=True
        )
        return twiml_message(SMS_FAILURE_MESSAGE)

    logger.info(
        "sms_webhook_processed",
        message_sid=message.message_sid,
        next_step=result.next_step.value if result.next_step else None,
        flow_complete=result.flow_complete,
    )

    return twiml_message(result.message)
