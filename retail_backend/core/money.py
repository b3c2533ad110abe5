# core/money.py

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(v) -> Decimal:
    """
    Normalize any numeric input to a 2dp Decimal.

    Floats go through str() so 0.1 stays 0.10 instead of its binary expansion.
    """
    if v is None or v == "":
        return ZERO

    if isinstance(v, bool):
        raise ValueError("amount must be numeric")

    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {v!r}") from exc
