"""
SMS Donation Processor.

Advances an SMS donation conversation by exactly one step per inbound
message: amount -> card -> expiry -> cvv -> zip -> charge.
"""

from dataclasses import dataclass

from donation_server.flows.constants import (
    MISSING_REFERENCE,
    RESTART_KEYWORDS,
    SMS_FAILURE_MESSAGE,
    SMS_PROMPTS,
    SMS_RESTARTED_MESSAGE,
    SMS_SUCCESS_TEMPLATE,
    SMSStep,
)
from donation_server.flows.validators import (
    ValidationResult,
    validate_amount,
    validate_card_number,
    validate_cvv,
    validate_expiry,
    validate_zip,
)
from donation_server.integrations.cardknox import (
    CardknoxClient,
    PaymentRequest,
    PaymentResult,
)
from donation_server.logging_config import get_logger, mask_phone
from donation_server.storage.event_log import EventLog
from donation_server.storage.session_store import DonationSession, SessionStore

logger = get_logger(__name__)


# Re-prompts for invalid input; the amount step simply asks again
_INVALID_PROMPTS = {
    SMSStep.AWAITING_AMOUNT: SMS_PROMPTS[SMSStep.AWAITING_AMOUNT],
    SMSStep.AWAITING_CARD: "Invalid credit card number. Please reply with a valid 15 or 16 digit card number.",
    SMSStep.AWAITING_EXPIRY: "Invalid expiration date. Please reply with 4 digits (MMYY).",
    SMSStep.AWAITING_CVV: "Invalid CVV. Please reply with 3 or 4 digits.",
    SMSStep.AWAITING_ZIP: "Invalid ZIP code. Please reply with your 5 digit ZIP code.",
}


@dataclass
class SMSResponse:
    """Response from the SMS processor: exactly one reply per inbound message."""
    message: str
    next_step: SMSStep | None = None
    flow_complete: bool = False
    error: str | None = None
    payment: PaymentResult | None = None


class SMSProcessor:
    """
    Processes SMS donation conversations.

    Sessions are read from and written back to the session store; the
    session is removed as soon as a charge has been attempted, whatever
    its outcome.
    """

    def __init__(
        self,
        sessions: SessionStore,
        payment_client: CardknoxClient,
        events: EventLog,
    ):
        """
        Initialize SMS processor.

        Args:
            sessions: Store of in-progress conversations
            payment_client: Gateway client used at the final step
            events: Diagnostics event log
        """
        self.sessions = sessions
        self.payment_client = payment_client
        self.events = events

    async def process(self, sender: str, body: str) -> SMSResponse:
        """
        Process one inbound message.

        Args:
            sender: Sender phone number (correlation key)
            body: Message text

        Returns:
            SMSResponse with the reply text
        """
        text = (body or "").strip()
        session = self.sessions.get(sender)
        step = session.step if session else SMSStep.AWAITING_AMOUNT

        logger.debug(
            "sms_process_step",
            phone=mask_phone(sender),
            current_step=step.value,
            has_session=session is not None,
        )

        if text.lower() in RESTART_KEYWORDS:
            return self._restart(sender, session)

        if session is None:
            session = DonationSession(sender=sender)

        if step == SMSStep.AWAITING_AMOUNT:
            return self._advance(session, text, validate_amount(text), "amount", SMSStep.AWAITING_CARD)
        elif step == SMSStep.AWAITING_CARD:
            return self._advance(session, text, validate_card_number(text), "card_number", SMSStep.AWAITING_EXPIRY)
        elif step == SMSStep.AWAITING_EXPIRY:
            return self._advance(session, text, validate_expiry(text), "expiry", SMSStep.AWAITING_CVV)
        elif step == SMSStep.AWAITING_CVV:
            return self._advance(session, text, validate_cvv(text), "cvv", SMSStep.AWAITING_ZIP)
        else:
            return await self._process_zip(session, text)

    def _advance(
        self,
        session: DonationSession,
        text: str,
        result: ValidationResult,
        attr: str,
        next_step: SMSStep,
    ) -> SMSResponse:
        """Store a validated field and move to the next step, or re-prompt."""
        step = session.step

        if not result.valid:
            self.events.append(session.sender, step.value, text, result.error)
            logger.info(
                "sms_step_invalid",
                phone=mask_phone(session.sender),
                step=step.value,
                error=result.error,
            )
            return SMSResponse(
                message=_INVALID_PROMPTS[step],
                next_step=step,
                error=result.error,
            )

        setattr(session, attr, result.value)
        session.step = next_step
        self.sessions.save(session)

        self.events.append(session.sender, step.value, result.value)
        logger.info(
            "sms_step_advanced",
            phone=mask_phone(session.sender),
            step=step.value,
            next_step=next_step.value,
        )

        return SMSResponse(message=SMS_PROMPTS[next_step], next_step=next_step)

    async def _process_zip(self, session: DonationSession, text: str) -> SMSResponse:
        """Validate the ZIP and charge the card."""
        result = validate_zip(text)
        if not result.valid:
            return self._advance(session, text, result, "zip_code", SMSStep.AWAITING_ZIP)

        session.zip_code = result.value
        self.events.append(session.sender, SMSStep.AWAITING_ZIP.value, result.value)

        payment = await self.payment_client.charge(PaymentRequest(
            amount=session.amount,
            card_number=session.card_number,
            expiry=session.expiry,
            cvv=session.cvv,
            zip_code=session.zip_code,
            phone=session.sender,
        ))

        # A new donation always starts over, approved or not
        self.sessions.delete(session.sender)

        if payment.approved:
            self.events.append(session.sender, "payment", payment.reference_number)
            logger.info(
                "sms_donation_completed",
                phone=mask_phone(session.sender),
                amount=session.amount,
                reference_number=payment.reference_number,
            )
            return SMSResponse(
                message=SMS_SUCCESS_TEMPLATE.format(
                    amount=session.amount,
                    reference=payment.reference_number or MISSING_REFERENCE,
                ),
                flow_complete=True,
                payment=payment,
            )

        self.events.append(
            session.sender, "payment", payment.status, f"{payment.outcome.value}: {payment.error}"
        )
        logger.warning(
            "sms_donation_failed",
            phone=mask_phone(session.sender),
            outcome=payment.outcome.value,
            error=payment.error,
        )
        return SMSResponse(
            message=SMS_FAILURE_MESSAGE,
            flow_complete=True,
            error=payment.outcome.value,
            payment=payment,
        )

    def _restart(self, sender: str, session: DonationSession | None) -> SMSResponse:
        """Discard any session and ask for the amount again."""
        if session is not None:
            self.sessions.delete(sender)
            self.events.append(sender, session.step.value, None, "Restarted by sender")
            logger.info("sms_session_restarted", phone=mask_phone(sender), step=session.step.value)

        return SMSResponse(
            message=SMS_RESTARTED_MESSAGE if session else SMS_PROMPTS[SMSStep.AWAITING_AMOUNT],
            next_step=SMSStep.AWAITING_AMOUNT,
        )
