"""
Donation Input Validators.

Validates the payment fields collected by the SMS and voice flows.
Validators never raise: they return a ValidationResult the step machines
turn into either an advance or a re-prompt.
"""

import re
from dataclasses import dataclass
from typing import Any

from donation_server.flows.constants import AMOUNT_MAX_DIGITS, ZIP_DIGITS

# [0-9] instead of \d: Unicode digits must not pass as card data
_AMOUNT_PATTERN = re.compile(r"\$?([0-9]+(\.[0-9]{1,2})?)")
_NON_DIGITS = re.compile(r"[^0-9]")
_CARD_PATTERN = re.compile(r"[0-9]{15,16}")
_EXPIRY_PATTERN = re.compile(r"[0-9]{4}")
_CVV_PATTERN = re.compile(r"[0-9]{3,4}")
_ZIP_PATTERN = re.compile(r"[0-9]{%d}" % ZIP_DIGITS)
_AMOUNT_DIGITS_PATTERN = re.compile(r"[0-9]{1,%d}" % AMOUNT_MAX_DIGITS)


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    valid: bool
    value: Any = None
    error: str | None = None


# ─────────────────────────────────────────────────────────────────────────────
# Amount Validation
# ─────────────────────────────────────────────────────────────────────────────

def validate_amount(input_text: str) -> ValidationResult:
    """
    Extract a donation amount from free text.

    The first "$12", "12" or "12.50" looking token wins, so "I'd like to
    give $25 today" yields "25".

    Args:
        input_text: SMS body

    Returns:
        ValidationResult with the amount as a string
    """
    match = _AMOUNT_PATTERN.search(input_text or "")

    if not match:
        return ValidationResult(
            valid=False,
            error="No amount found"
        )

    return ValidationResult(valid=True, value=match.group(1))


def validate_amount_digits(digits: str) -> ValidationResult:
    """Validate a keypad amount (1-4 digits, whole dollars)."""
    if not _AMOUNT_DIGITS_PATTERN.fullmatch(digits or ""):
        return ValidationResult(
            valid=False,
            error="Invalid amount input"
        )

    return ValidationResult(valid=True, value=digits)


# ─────────────────────────────────────────────────────────────────────────────
# Card Validation
# ─────────────────────────────────────────────────────────────────────────────

def validate_card_number(input_text: str) -> ValidationResult:
    """
    Validate a card number.

    Spaces, dashes and any other non-digit characters are stripped first;
    the remaining digits must be 15 (Amex) or 16 long.

    Args:
        input_text: User's input

    Returns:
        ValidationResult with the digits-only card number
    """
    card_number = _NON_DIGITS.sub("", input_text or "")

    if not _CARD_PATTERN.fullmatch(card_number):
        return ValidationResult(
            valid=False,
            error="Invalid credit card input"
        )

    return ValidationResult(valid=True, value=card_number)


def validate_expiry(input_text: str) -> ValidationResult:
    """Validate an expiration date (exactly 4 digits, MMYY, no stripping)."""
    if not _EXPIRY_PATTERN.fullmatch(input_text or ""):
        return ValidationResult(
            valid=False,
            error="Invalid expiration input"
        )

    return ValidationResult(valid=True, value=input_text)


def validate_cvv(input_text: str) -> ValidationResult:
    """Validate a CVV (3 or 4 digits)."""
    if not _CVV_PATTERN.fullmatch(input_text or ""):
        return ValidationResult(
            valid=False,
            error="Invalid CVV input"
        )

    return ValidationResult(valid=True, value=input_text)


def validate_zip(input_text: str) -> ValidationResult:
    """Validate a 5 digit ZIP code."""
    if not _ZIP_PATTERN.fullmatch(input_text or ""):
        return ValidationResult(
            valid=False,
            error="Invalid ZIP input"
        )

    return ValidationResult(valid=True, value=input_text)


def validate_turn(value: str | None) -> ValidationResult:
    """Validate the callback turn counter carried in voice callback URLs."""
    if value is None or value == "":
        return ValidationResult(valid=True, value=0)

    if not value.isascii() or not value.isdigit() or len(value) > 6:
        return ValidationResult(valid=False, error="Invalid turn")

    return ValidationResult(valid=True, value=int(value))
