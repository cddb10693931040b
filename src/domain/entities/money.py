"""Fixed-point money helpers (two fraction digits)."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a Numeric(14, 2) column holds.
MAX_AMOUNT = Decimal("999999999999.99")


def quantize(amount: Decimal) -> Decimal:
    """Round to cents."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal | None:
    """Parse a number or numeric string into an unrounded Decimal.

    Returns None for booleans, non-numeric values, NaN and infinities.
    Floats go through ``str`` so 59.99 stays 59.99.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_amount(value: Any) -> Decimal | None:
    """Parse ``value`` into a cent-precision Decimal within storable range.

    Returns None when ``value`` is not numeric or its magnitude exceeds
    MAX_AMOUNT after rounding.
    """
    amount = to_decimal(value)
    if amount is None:
        return None
    try:
        rounded = quantize(amount)
    except InvalidOperation:
        return None
    if abs(rounded) > MAX_AMOUNT:
        return None
    return rounded
