"""
Unit tests for donation input validators.
"""

import pytest

from donation_server.flows.validators import (
    validate_amount,
    validate_amount_digits,
    validate_card_number,
    validate_cvv,
    validate_expiry,
    validate_turn,
    validate_zip,
)


# ─────────────────────────────────────────────────────────────────────────────
# Amount Validation Tests
# ─────────────────────────────────────────────────────────────────────────────

class TestValidateAmount:
    """Tests for validate_amount function (SMS free text)."""

    def test_plain_number(self):
        result = validate_amount("10")
        assert result.valid is True
        assert result.value == "10"

    def test_dollar_sign(self):
        result = validate_amount("$25")
        assert result.valid is True
        assert result.value == "25"

    def test_cents(self):
        result = validate_amount("$12.50")
        assert result.valid is True
        assert result.value == "12.50"

    def test_amount_inside_sentence(self):
        """The first amount-looking token wins."""
        result = validate_amount("I'd like to give $40 now, maybe 10 later")
        assert result.valid is True
        assert result.value == "40"

    def test_extra_decimals_truncated_to_two(self):
        result = validate_amount("10.555")
        assert result.valid is True
        assert result.value == "10.55"

    def test_single_decimal(self):
        result = validate_amount("7.5")
        assert result.value == "7.5"

    def test_no_amount(self):
        for text in ["", "hello", "$", "ten dollars"]:
            result = validate_amount(text)
            assert result.valid is False
            assert result.error


class TestValidateAmountDigits:
    """Tests for validate_amount_digits function (keypad)."""

    @pytest.mark.parametrize("digits", ["1", "25", "100", "9999", "0"])
    def test_valid(self, digits):
        result = validate_amount_digits(digits)
        assert result.valid is True
        assert result.value == digits

    @pytest.mark.parametrize("digits", ["", "12345", "12*", "#", "1.5"])
    def test_invalid(self, digits):
        result = validate_amount_digits(digits)
        assert result.valid is False
        assert result.error == "Invalid amount input"


# ─────────────────────────────────────────────────────────────────────────────
# Card Validation Tests
# ─────────────────────────────────────────────────────────────────────────────

class TestValidateCardNumber:
    """Tests for validate_card_number function."""

    def test_sixteen_digits(self):
        result = validate_card_number("4111111111111111")
        assert result.valid is True
        assert result.value == "4111111111111111"

    def test_fifteen_digits_amex(self):
        result = validate_card_number("378282246310005")
        assert result.valid is True

    def test_separators_stripped(self):
        """Spaces and dashes are removed before the length check."""
        result = validate_card_number("4111-1111 1111-1111")
        assert result.valid is True
        assert result.value == "4111111111111111"

    @pytest.mark.parametrize("text", ["", "4111", "41111111111111", "41111111111111111", "abcd"])
    def test_wrong_length(self, text):
        result = validate_card_number(text)
        assert result.valid is False
        assert result.error == "Invalid credit card input"

    def test_unicode_digits_rejected(self):
        """Only ASCII digits count."""
        result = validate_card_number("٤١١١١١١١١١١١١١١١")
        assert result.valid is False


# ─────────────────────────────────────────────────────────────────────────────
# Expiry / CVV / ZIP Validation Tests
# ─────────────────────────────────────────────────────────────────────────────

class TestValidateExpiry:
    """Tests for validate_expiry function."""

    def test_valid(self):
        result = validate_expiry("1225")
        assert result.valid is True
        assert result.value == "1225"

    @pytest.mark.parametrize("text", ["", "122", "12255", "12/25", "12 25", "ab25"])
    def test_invalid_no_stripping(self, text):
        result = validate_expiry(text)
        assert result.valid is False


class TestValidateCvv:
    """Tests for validate_cvv function."""

    @pytest.mark.parametrize("text", ["123", "1234"])
    def test_valid(self, text):
        assert validate_cvv(text).valid is True

    @pytest.mark.parametrize("text", ["", "12", "12345", "12a", " 123"])
    def test_invalid(self, text):
        result = validate_cvv(text)
        assert result.valid is False
        assert result.error == "Invalid CVV input"


class TestValidateZip:
    """Tests for validate_zip function."""

    def test_valid(self):
        result = validate_zip("90210")
        assert result.valid is True
        assert result.value == "90210"

    @pytest.mark.parametrize("text", ["", "9021", "902101", "90-21", "90210-1234"])
    def test_invalid(self, text):
        assert validate_zip(text).valid is False


class TestValidateTurn:
    """Tests for validate_turn function."""

    def test_missing_is_zero(self):
        assert validate_turn(None).value == 0
        assert validate_turn("").value == 0

    def test_number(self):
        result = validate_turn("7")
        assert result.valid is True
        assert result.value == 7

    @pytest.mark.parametrize("value", ["-1", "x", "1.5", "9999999"])
    def test_invalid(self, value):
        assert validate_turn(value).valid is False
