"""
Donation Flow Constants.

Defines the steps, prompts, keywords and audio assets for the SMS and
voice (IVR) donation flows.
"""

from enum import Enum


class SMSStep(str, Enum):
    """Steps of the SMS donation conversation, in collection order."""
    AWAITING_AMOUNT = "awaiting_amount"
    AWAITING_CARD = "awaiting_card"
    AWAITING_EXPIRY = "awaiting_expiry"
    AWAITING_CVV = "awaiting_cvv"
    AWAITING_ZIP = "awaiting_zip"


class IVRStep(str, Enum):
    """
    Steps of the voice donation flow.

    Values double as the callback path segment under the voice router.
    """
    ENTRY = ""
    COLLECTING_AMOUNT = "process-donation"
    CONFIRMING_AMOUNT = "confirm-donation"
    COLLECTING_CARD = "process-cc"
    COLLECTING_EXPIRY = "process-exp"
    COLLECTING_CVV = "process-cvv"
    COLLECTING_ZIP = "process-zip"
    RETRY_OR_END = "retry-donation"


# ─────────────────────────────────────────────────────────────────────────────
# SMS Prompts
# ─────────────────────────────────────────────────────────────────────────────

SMS_PROMPTS = {
    SMSStep.AWAITING_AMOUNT: "Please reply with the amount you wish to donate (e.g., 10 or $10).",
    SMSStep.AWAITING_CARD: "Thank you! Please reply with your credit card number (no spaces or dashes).",
    SMSStep.AWAITING_EXPIRY: "Please reply with the expiration date (MMYY).",
    SMSStep.AWAITING_CVV: "Please reply with the CVV (3 or 4 digits).",
    SMSStep.AWAITING_ZIP: "Please reply with your 5 digit ZIP code.",
}

SMS_SUCCESS_TEMPLATE = "Thank you! Your donation of ${amount} was successful. Ref: {reference}"
SMS_FAILURE_MESSAGE = "Sorry, there was an error processing your donation. Please try again."
SMS_RESTARTED_MESSAGE = "Your donation has been cancelled. " + SMS_PROMPTS[SMSStep.AWAITING_AMOUNT]

# Shown instead of a reference when the gateway approves without one
MISSING_REFERENCE = "N/A"

# Explicit re-entry commands for the SMS flow
RESTART_KEYWORDS = {"cancel", "restart", "start over", "stop"}


# ─────────────────────────────────────────────────────────────────────────────
# Voice Prompts
# ─────────────────────────────────────────────────────────────────────────────

# Audio assets, resolved against settings.ivr_audio_base_url
AUDIO_AMOUNT_PROMPT = "MM_2.mp3"       # Please enter the amount and press #
AUDIO_YOU_ENTERED = "MM_3.mp3"         # You have entered
AUDIO_CONFIRM_OPTIONS = "MM_4.mp3"     # If correct, press 1. To re-enter, press 2.
AUDIO_CARD_PROMPT = "MM_5.mp3"         # Please enter your credit card number and press #
AUDIO_EXPIRY_PROMPT = "MM_6.mp3"       # Please enter expiration date and press #
AUDIO_CVV_PROMPT = "MM_7.mp3"          # Please enter CVV and press #
AUDIO_ZIP_PROMPT = "MM_8.mp3"          # Please enter your 5 digit ZIP code and press #
AUDIO_THANK_YOU = "MM_9.mp3"           # Thank you, your donation of
AUDIO_REFERENCE = "MM_10.mp3"          # was successful. Your reference number is
AUDIO_DECLINED = "MM_11.mp3"           # Your card was declined. To try another card, press 1.

VOICE = "man"

SAY_INVALID_INPUT = "Invalid input."
SAY_GATEWAY_ERROR = (
    "We are sorry, we could not process your donation at this time. Goodbye."
)
SAY_FAREWELL = "Thank you for calling. Goodbye."
SAY_RESTART = "Sorry, something went wrong. Let's start again."

# Gather settings
FINISH_ON_KEY = "#"
GATHER_TIMEOUT_SECONDS = 10
CONFIRM_TIMEOUT_SECONDS = 10
RETRY_TIMEOUT_SECONDS = 5
HOLD_PAUSE_SECONDS = 2
AMOUNT_MAX_DIGITS = 4
ZIP_DIGITS = 5

# Confirmation / retry digits
CONFIRM_DIGIT = "1"
REENTER_DIGIT = "2"
RETRY_DIGIT = "1"
