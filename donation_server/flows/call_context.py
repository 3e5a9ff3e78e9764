"""
Voice call context.

The voice flow keeps no server-side session: fields collected so far travel
in the query string of each callback address Twilio is told to POST to.
Everything read back from that query string is re-validated before use.
"""

from dataclasses import dataclass, field, replace
from typing import Mapping
from urllib.parse import urlencode

from donation_server.flows.validators import (
    validate_amount_digits,
    validate_card_number,
    validate_cvv,
    validate_expiry,
    validate_turn,
    validate_zip,
)


class InvalidCallContext(ValueError):
    """Raised when callback parameters fail validation."""

    def __init__(self, param: str, reason: str):
        super().__init__(f"{param}: {reason}")
        self.param = param
        self.reason = reason


# (attribute, query parameter, validator), in collection order
CONTEXT_PARAMS = (
    ("amount", "amount", validate_amount_digits),
    ("card_number", "cc", validate_card_number),
    ("expiry", "exp", validate_expiry),
    ("cvv", "cvv", validate_cvv),
    ("zip_code", "zip", validate_zip),
)


@dataclass(frozen=True)
class CallContext:
    """
    Ordered record of the fields already collected on a call.

    Attributes:
        amount: Whole-dollar amount as entered on the keypad
        card_number: Digits-only card number
        expiry: MMYY
        cvv: 3-4 digit security code
        zip_code: 5 digit ZIP
        turn: Callback counter used to detect duplicate deliveries
    """
    amount: str | None = None
    card_number: str | None = field(default=None, repr=False)
    expiry: str | None = field(default=None, repr=False)
    cvv: str | None = field(default=None, repr=False)
    zip_code: str | None = None
    turn: int = 0

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "CallContext":
        """
        Build a context from callback query parameters.

        Each present parameter must pass its field validator, and a field may
        only be present when every field before it is.

        Raises:
            InvalidCallContext: On a malformed value or a gap in the sequence
        """
        values: dict[str, str] = {}
        gap_at: str | None = None

        for attr, param, validator in CONTEXT_PARAMS:
            raw = params.get(param)
            if not raw:
                gap_at = gap_at or param
                continue
            if gap_at is not None:
                raise InvalidCallContext(param, f"present without {gap_at}")
            result = validator(raw)
            if not result.valid:
                raise InvalidCallContext(param, result.error or "invalid")
            values[attr] = result.value

        turn = validate_turn(params.get("turn"))
        if not turn.valid:
            raise InvalidCallContext("turn", turn.error or "invalid")

        return cls(turn=turn.value, **values)

    def require(self, *attrs: str) -> None:
        """Ensure the named fields were collected before this step."""
        for attr in attrs:
            if getattr(self, attr) is None:
                param = next(p for a, p, _ in CONTEXT_PARAMS if a == attr)
                raise InvalidCallContext(param, "missing")

    def with_field(self, **values: str) -> "CallContext":
        """Return a copy with additional collected fields."""
        return replace(self, **values)

    def next_turn(self) -> "CallContext":
        """Return a copy for the next callback round trip."""
        return replace(self, turn=self.turn + 1)

    def only_amount(self) -> "CallContext":
        """Drop everything but the amount (used when re-entering card details)."""
        return CallContext(amount=self.amount, turn=self.turn)

    def to_query(self, **extra: str) -> str:
        """Encode collected fields, in order, followed by the turn counter."""
        pairs = [
            (param, getattr(self, attr))
            for attr, param, _ in CONTEXT_PARAMS
            if getattr(self, attr) is not None
        ]
        pairs.extend(extra.items())
        pairs.append(("turn", str(self.turn)))
        return urlencode(pairs)
