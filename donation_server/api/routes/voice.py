"""
Twilio voice webhook endpoints.

Twilio posts here when a call starts and after every <Gather> or
<Redirect>. The step is the path; fields collected so far are in the
query string.
"""

from fastapi import APIRouter, Depends, Request, Response
from twilio.twiml.voice_response import VoiceResponse

from donation_server.api.deps import IVRFlow, validate_twilio_signature
from donation_server.flows.constants import SAY_GATEWAY_ERROR, VOICE, IVRStep
from donation_server.flows.ivr_processor import IVRProcessor
from donation_server.integrations.twilio import parse_voice_webhook
from donation_server.logging_config import get_logger, mask_phone

logger = get_logger(__name__)

router = APIRouter(
    prefix="/voice",
    tags=["voice"],
    dependencies=[Depends(validate_twilio_signature)],
)


def twiml(content: str) -> Response:
    """Serve a TwiML document."""
    return Response(content=content, media_type="application/xml")


async def _handle(step: IVRStep, request: Request, processor: IVRProcessor) -> Response:
    form_data = await request.form()
    query = dict(request.query_params)
    event = parse_voice_webhook(
        {key: value for key, value in form_data.items()},
        query,
        digits_from_query=step == IVRStep.COLLECTING_AMOUNT,
    )

    logger.info(
        "voice_webhook_received",
        step=step.value or "voice",
        call_sid=event.call_sid,
        phone=mask_phone(event.caller),
    )

    try:
        content = await processor.handle(
            step,
            query,
            event.digits,
            caller=event.caller,
            call_sid=event.call_sid,
        )
    except Exception as e:
        logger.error(
            "voice_webhook_error",
            step=step.value or "voice",
            call_sid=event.call_sid,
            error=str(e),
            exc_info=True
        )
        response = VoiceResponse()
        response.say(SAY_GATEWAY_ERROR, voice=VOICE)
        response.hangup()
        content = str(response)

    return twiml(content)


@router.post("")
@router.post("/")
async def voice_entry(request: Request, processor: IVRFlow):
    """Incoming call: ask for the donation amount."""
    return await _handle(IVRStep.ENTRY, request, processor)


@router.post("/process-donation")
async def process_donation(request: Request, processor: IVRFlow):
    """Amount entered (or confirmation timed out)."""
    return await _handle(IVRStep.COLLECTING_AMOUNT, request, processor)


@router.post("/confirm-donation")
async def confirm_donation(request: Request, processor: IVRFlow):
    """1 to confirm the amount, 2 to re-enter it."""
    return await _handle(IVRStep.CONFIRMING_AMOUNT, request, processor)


@router.post("/process-cc")
async def process_card(request: Request, processor: IVRFlow):
    return await _handle(IVRStep.COLLECTING_CARD, request, processor)


@router.post("/process-exp")
async def process_expiry(request: Request, processor: IVRFlow):
    return await _handle(IVRStep.COLLECTING_EXPIRY, request, processor)


@router.post("/process-cvv")
async def process_cvv(request: Request, processor: IVRFlow):
    return await _handle(IVRStep.COLLECTING_CVV, request, processor)


@router.post("/process-zip")
async def process_zip(request: Request, processor: IVRFlow):
    """ZIP entered: charge the card."""
    return await _handle(IVRStep.COLLECTING_ZIP, request, processor)


@router.post("/retry-donation")
async def retry_donation(request: Request, processor: IVRFlow):
    """After a decline: 1 to try another card."""
    return await _handle(IVRStep.RETRY_OR_END, request, processor)
