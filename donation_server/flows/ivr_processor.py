"""
IVR Donation Processor.

Handles the touch-tone donation flow. Nothing is stored per call except a
small duplicate-delivery guard: collected fields ride along in the query
string of each callback address (see CallContext), and every inbound
event produces exactly one TwiML document.

Flow:
    entry -> process-donation -> confirm-donation -> process-cc
          -> process-exp -> process-cvv -> process-zip -> charge
    charge declined -> retry-donation -> process-cc (amount kept)
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Mapping

from twilio.twiml.voice_response import Gather, VoiceResponse

from donation_server.config import settings
from donation_server.flows.call_context import CallContext, InvalidCallContext
from donation_server.flows.constants import (
    AMOUNT_MAX_DIGITS,
    AUDIO_AMOUNT_PROMPT,
    AUDIO_CARD_PROMPT,
    AUDIO_CONFIRM_OPTIONS,
    AUDIO_CVV_PROMPT,
    AUDIO_DECLINED,
    AUDIO_EXPIRY_PROMPT,
    AUDIO_REFERENCE,
    AUDIO_THANK_YOU,
    AUDIO_YOU_ENTERED,
    AUDIO_ZIP_PROMPT,
    CONFIRM_DIGIT,
    CONFIRM_TIMEOUT_SECONDS,
    FINISH_ON_KEY,
    GATHER_TIMEOUT_SECONDS,
    HOLD_PAUSE_SECONDS,
    REENTER_DIGIT,
    RETRY_DIGIT,
    RETRY_TIMEOUT_SECONDS,
    SAY_FAREWELL,
    SAY_GATEWAY_ERROR,
    SAY_INVALID_INPUT,
    SAY_RESTART,
    VOICE,
    ZIP_DIGITS,
    IVRStep,
)
from donation_server.flows.validators import (
    ValidationResult,
    validate_amount_digits,
    validate_card_number,
    validate_cvv,
    validate_expiry,
    validate_zip,
)
from donation_server.integrations.cardknox import (
    CardknoxClient,
    PaymentOutcome,
    PaymentRequest,
)
from donation_server.logging_config import get_logger, mask_phone
from donation_server.storage.event_log import EventLog

logger = get_logger(__name__)


@dataclass
class _Prompt:
    """Gather settings for one collection step."""
    audio: str
    num_digits: int | None = None


_PROMPTS = {
    IVRStep.COLLECTING_AMOUNT: _Prompt(AUDIO_AMOUNT_PROMPT, num_digits=AMOUNT_MAX_DIGITS),
    IVRStep.COLLECTING_CARD: _Prompt(AUDIO_CARD_PROMPT),
    IVRStep.COLLECTING_EXPIRY: _Prompt(AUDIO_EXPIRY_PROMPT),
    IVRStep.COLLECTING_CVV: _Prompt(AUDIO_CVV_PROMPT),
    IVRStep.COLLECTING_ZIP: _Prompt(AUDIO_ZIP_PROMPT, num_digits=ZIP_DIGITS),
}


class CallTracker:
    """
    Last answered turn per call, with the markup that answered it.

    The confirmation gather and its timeout redirect carry the same turn,
    so whichever Twilio delivers first is processed and anything not newer
    than the last answered turn (a retried webhook, a late redirect) gets
    the previous answer replayed instead of being processed again. While a
    turn is still being processed its entry holds a pause-and-redirect, so
    a duplicate waits for the real answer. Bounded LRU so abandoned calls
    do not accumulate.
    """

    def __init__(self, max_calls: int | None = None):
        self.max_calls = max_calls or settings.ivr_call_tracker_size
        self._calls: OrderedDict[str, tuple[int, str]] = OrderedDict()

    def replay(self, call_sid: str | None, turn: int) -> str | None:
        """Markup to replay if this turn was already answered, else None."""
        if not call_sid or call_sid not in self._calls:
            return None
        last_turn, twiml = self._calls[call_sid]
        if turn > last_turn:
            return None
        return twiml

    def last_turn(self, call_sid: str | None) -> int:
        if not call_sid or call_sid not in self._calls:
            return 0
        return self._calls[call_sid][0]

    def remember(self, call_sid: str | None, turn: int, twiml: str) -> None:
        if not call_sid:
            return
        self._calls[call_sid] = (turn, twiml)
        self._calls.move_to_end(call_sid)
        while len(self._calls) > self.max_calls:
            self._calls.popitem(last=False)

    def clear(self) -> None:
        self._calls.clear()

    def __len__(self) -> int:
        return len(self._calls)


class IVRProcessor:
    """
    Processes touch-tone donation calls.

    One public entry point, handle(), validates the callback context,
    filters duplicate deliveries and dispatches to the step handler.
    """

    def __init__(
        self,
        payment_client: CardknoxClient,
        events: EventLog,
        tracker: CallTracker | None = None,
        base_path: str | None = None,
        audio_base_url: str | None = None,
    ):
        """
        Initialize IVR processor.

        Args:
            payment_client: Gateway client used after the ZIP step
            events: Diagnostics event log
            tracker: Duplicate-delivery guard (a private one by default)
            base_path: Path the voice router is mounted on
            audio_base_url: Where the prompt recordings are hosted
        """
        self.payment_client = payment_client
        self.events = events
        self.tracker = tracker if tracker is not None else CallTracker()
        self.base_path = (base_path or settings.voice_base_path).rstrip("/")
        self.audio_base_url = (audio_base_url or settings.ivr_audio_base_url).rstrip("/")

    async def handle(
        self,
        step: IVRStep,
        params: Mapping[str, str],
        digits: str | None,
        caller: str | None = None,
        call_sid: str | None = None,
    ) -> str:
        """
        Process one voice webhook event.

        Args:
            step: Step the callback address points at
            params: Query parameters of the callback address
            digits: Keypad digits Twilio gathered (may be empty)
            caller: Caller phone number
            call_sid: Twilio call identifier

        Returns:
            TwiML document
        """
        digits = digits or ""
        step_name = step.value or "voice"

        try:
            context = CallContext.from_params(params)
        except InvalidCallContext as e:
            return self._finish(call_sid, None, self._restart(step_name, caller, call_sid, e))

        replayed = self.tracker.replay(call_sid, context.turn)
        if replayed is not None:
            logger.info(
                "ivr_duplicate_event",
                step=step_name,
                turn=context.turn,
                phone=mask_phone(caller),
            )
            self.events.append(caller, step_name, digits, "Duplicate delivery ignored")
            return replayed

        logger.debug(
            "ivr_process_step",
            step=step_name,
            turn=context.turn,
            phone=mask_phone(caller),
        )

        # Claim the turn before any await: a duplicate arriving mid-charge
        # is put on hold instead of being processed a second time
        self.tracker.remember(call_sid, context.turn, str(self._holding(step, context)))

        try:
            if step == IVRStep.ENTRY:
                response = self._entry(context)
            elif step == IVRStep.COLLECTING_AMOUNT:
                response = self._process_amount(context, digits, caller)
            elif step == IVRStep.CONFIRMING_AMOUNT:
                response = self._process_confirmation(context, digits, caller)
            elif step == IVRStep.COLLECTING_CARD:
                response = self._process_card(context, digits, caller)
            elif step == IVRStep.COLLECTING_EXPIRY:
                response = self._process_expiry(context, digits, caller)
            elif step == IVRStep.COLLECTING_CVV:
                response = self._process_cvv(context, digits, caller)
            elif step == IVRStep.COLLECTING_ZIP:
                response = await self._process_zip(context, digits, caller)
            else:
                response = self._process_retry(context, digits, caller)
        except InvalidCallContext as e:
            response = self._restart(step_name, caller, call_sid, e)
        except Exception:
            # Held duplicates must not redirect forever
            self._finish(call_sid, context.turn, self._apology())
            raise

        return self._finish(call_sid, context.turn, response)

    def _finish(self, call_sid: str | None, turn: int | None, response: VoiceResponse) -> str:
        twiml = str(response)
        if turn is not None:
            self.tracker.remember(call_sid, turn, twiml)
        return twiml

    # ─────────────────────────────────────────────────────────────────────────
    # Step Handlers
    # ─────────────────────────────────────────────────────────────────────────

    def _entry(self, context: CallContext) -> VoiceResponse:
        """Initial prompt for the amount."""
        response = VoiceResponse()
        self._gather_step(response, IVRStep.COLLECTING_AMOUNT, CallContext(turn=context.turn + 1))
        return response

    def _process_amount(self, context: CallContext, digits: str, caller: str | None) -> VoiceResponse:
        """Validate the amount and ask the caller to confirm it."""
        result = validate_amount_digits(digits)
        response = VoiceResponse()
        next_context = CallContext(turn=context.turn + 1)

        if not self._log_result(caller, IVRStep.COLLECTING_AMOUNT, digits, result):
            self._gather_step(response, IVRStep.COLLECTING_AMOUNT, next_context)
            return response

        next_context = next_context.with_field(amount=result.value)
        gather = response.gather(
            num_digits=1,
            action=self._callback(IVRStep.CONFIRMING_AMOUNT, next_context),
            method="POST",
            timeout=CONFIRM_TIMEOUT_SECONDS,
            finish_on_key="",
        )
        gather.play(self._audio(AUDIO_YOU_ENTERED))
        gather.say(f"{int(result.value)} dollars.", voice=VOICE)
        gather.play(self._audio(AUDIO_CONFIRM_OPTIONS))

        # No answer: re-enter the amount step with the same digits attached
        response.redirect(
            self._callback(
                IVRStep.COLLECTING_AMOUNT,
                CallContext(turn=next_context.turn),
                Digits=result.value,
            ),
            method="POST",
        )
        return response

    def _process_confirmation(self, context: CallContext, digits: str, caller: str | None) -> VoiceResponse:
        """1 continues to the card number, 2 starts over, anything else re-asks."""
        context.require("amount")
        response = VoiceResponse()
        next_context = context.next_turn()

        if digits == CONFIRM_DIGIT:
            self.events.append(caller, IVRStep.CONFIRMING_AMOUNT.value, digits)
            self._gather_step(response, IVRStep.COLLECTING_CARD, next_context)
        elif digits == REENTER_DIGIT:
            self.events.append(caller, IVRStep.CONFIRMING_AMOUNT.value, digits)
            response.redirect(
                self._callback(IVRStep.ENTRY, CallContext(turn=next_context.turn)),
                method="POST",
            )
        else:
            self.events.append(caller, IVRStep.CONFIRMING_AMOUNT.value, digits, "Invalid confirmation input")
            response.say(SAY_INVALID_INPUT, voice=VOICE)
            response.redirect(
                self._callback(
                    IVRStep.COLLECTING_AMOUNT,
                    CallContext(turn=next_context.turn),
                    Digits=context.amount,
                ),
                method="POST",
            )

        return response

    def _process_card(self, context: CallContext, digits: str, caller: str | None) -> VoiceResponse:
        context.require("amount")
        return self._collect(
            context, caller, digits,
            step=IVRStep.COLLECTING_CARD,
            result=validate_card_number(digits),
            attr="card_number",
            next_step=IVRStep.COLLECTING_EXPIRY,
        )

    def _process_expiry(self, context: CallContext, digits: str, caller: str | None) -> VoiceResponse:
        context.require("amount", "card_number")
        return self._collect(
            context, caller, digits,
            step=IVRStep.COLLECTING_EXPIRY,
            result=validate_expiry(digits),
            attr="expiry",
            next_step=IVRStep.COLLECTING_CVV,
        )

    def _process_cvv(self, context: CallContext, digits: str, caller: str | None) -> VoiceResponse:
        context.require("amount", "card_number", "expiry")
        return self._collect(
            context, caller, digits,
            step=IVRStep.COLLECTING_CVV,
            result=validate_cvv(digits),
            attr="cvv",
            next_step=IVRStep.COLLECTING_ZIP,
        )

    async def _process_zip(self, context: CallContext, digits: str, caller: str | None) -> VoiceResponse:
        """Validate the ZIP, then charge the card with everything collected."""
        context.require("amount", "card_number", "expiry", "cvv")
        result = validate_zip(digits)
        response = VoiceResponse()

        if not self._log_result(caller, IVRStep.COLLECTING_ZIP, digits, result):
            self._gather_step(response, IVRStep.COLLECTING_ZIP, context.next_turn())
            return response

        amount = str(int(context.amount))
        payment = await self.payment_client.charge(PaymentRequest(
            amount=amount,
            card_number=context.card_number,
            expiry=context.expiry,
            cvv=context.cvv,
            zip_code=result.value,
            phone=caller or "",
        ))

        if payment.approved:
            self.events.append(caller, "payment", payment.reference_number)
            logger.info(
                "ivr_donation_completed",
                phone=mask_phone(caller),
                amount=amount,
                reference_number=payment.reference_number,
            )
            response.play(self._audio(AUDIO_THANK_YOU))
            response.say(f"{amount} dollars.", voice=VOICE)
            if payment.reference_number:
                response.play(self._audio(AUDIO_REFERENCE))
                response.say(", ".join(payment.reference_number), voice=VOICE)
            response.hangup()
            return response

        self.events.append(
            caller, "payment", payment.status, f"{payment.outcome.value}: {payment.error}"
        )

        if payment.outcome == PaymentOutcome.DECLINED:
            logger.warning(
                "ivr_donation_declined",
                phone=mask_phone(caller),
                status=payment.status,
                error=payment.error,
            )
            # Card details are dropped; only the amount survives a retry
            gather = response.gather(
                num_digits=1,
                action=self._callback(IVRStep.RETRY_OR_END, context.only_amount().next_turn()),
                method="POST",
                timeout=RETRY_TIMEOUT_SECONDS,
            )
            gather.play(self._audio(AUDIO_DECLINED))
            response.say(SAY_FAREWELL, voice=VOICE)
            response.hangup()
            return response

        logger.error(
            "ivr_donation_gateway_error",
            phone=mask_phone(caller),
            outcome=payment.outcome.value,
            error=payment.error,
        )
        response.say(SAY_GATEWAY_ERROR, voice=VOICE)
        response.hangup()
        return response

    def _process_retry(self, context: CallContext, digits: str, caller: str | None) -> VoiceResponse:
        """After a decline: the retry digit re-enters card details, anything else ends."""
        context.require("amount")
        response = VoiceResponse()

        if digits == RETRY_DIGIT:
            self.events.append(caller, IVRStep.RETRY_OR_END.value, digits)
            self._gather_step(response, IVRStep.COLLECTING_CARD, context.only_amount().next_turn())
            return response

        self.events.append(caller, IVRStep.RETRY_OR_END.value, digits, "Call ended after decline")
        response.say(SAY_FAREWELL, voice=VOICE)
        response.hangup()
        return response

    def _restart(
        self,
        step_name: str,
        caller: str | None,
        call_sid: str | None,
        error: InvalidCallContext,
    ) -> VoiceResponse:
        """Recover from a tampered or incomplete callback context."""
        logger.warning(
            "ivr_invalid_context",
            step=step_name,
            param=error.param,
            reason=error.reason,
            phone=mask_phone(caller),
        )
        self.events.append(caller, step_name, None, f"Invalid call context ({error.param})")

        response = VoiceResponse()
        response.say(SAY_RESTART, voice=VOICE)
        response.redirect(
            self._callback(
                IVRStep.ENTRY, CallContext(turn=self.tracker.last_turn(call_sid) + 1)
            ),
            method="POST",
        )
        return response

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _collect(
        self,
        context: CallContext,
        caller: str | None,
        digits: str,
        step: IVRStep,
        result: ValidationResult,
        attr: str,
        next_step: IVRStep,
    ) -> VoiceResponse:
        """Append a validated field and prompt for the next, or re-prompt."""
        response = VoiceResponse()

        if not self._log_result(caller, step, digits, result):
            # Same fields, fresh turn
            self._gather_step(response, step, context.next_turn())
            return response

        next_context = context.with_field(**{attr: result.value}).next_turn()
        self._gather_step(response, next_step, next_context)
        return response

    def _holding(self, step: IVRStep, context: CallContext) -> VoiceResponse:
        """Pause, then ask again for this turn's answer."""
        response = VoiceResponse()
        response.pause(length=HOLD_PAUSE_SECONDS)
        response.redirect(self._callback(step, context), method="POST")
        return response

    def _apology(self) -> VoiceResponse:
        response = VoiceResponse()
        response.say(SAY_GATEWAY_ERROR, voice=VOICE)
        response.hangup()
        return response

    def _gather_step(self, response: VoiceResponse, step: IVRStep, context: CallContext) -> Gather:
        """Gather digits for a collection step, posting back with the context."""
        prompt = _PROMPTS[step]
        gather = response.gather(
            action=self._callback(step, context),
            method="POST",
            timeout=GATHER_TIMEOUT_SECONDS,
            finish_on_key=FINISH_ON_KEY,
            num_digits=prompt.num_digits,
            action_on_empty_result="true",
        )
        gather.play(self._audio(prompt.audio))
        return gather

    def _log_result(
        self, caller: str | None, step: IVRStep, digits: str, result: ValidationResult
    ) -> bool:
        """Record a validation outcome; returns result.valid."""
        self.events.append(caller, step.value, digits, result.error)
        if not result.valid:
            logger.info(
                "ivr_step_invalid",
                step=step.value,
                error=result.error,
                digit_count=len(digits),
                phone=mask_phone(caller),
            )
        return result.valid

    def _callback(self, step: IVRStep, context: CallContext, **extra: str) -> str:
        path = f"{self.base_path}/{step.value}" if step.value else self.base_path
        return f"{path}?{context.to_query(**extra)}"

    def _audio(self, asset: str) -> str:
        return f"{self.audio_base_url}/{asset}"
