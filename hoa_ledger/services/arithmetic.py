"""Guarded division and currency rounding.

Every division and monetary rounding in the ledger goes through this module,
so the divide-by-zero fallback and the penny rounding rule live in one place:

- safe_divide returns the fallback (0 unless the caller says otherwise)
  instead of raising when the denominator is zero.
- round_cents quantizes to 0.01 with ROUND_HALF_UP, which for Decimal rounds
  halves away from zero (2.345 -> 2.35, -2.345 -> -2.35).

Example:
    >>> safe_divide(10, 4)
    Decimal('2.5')
    >>> safe_divide(10, 0)
    Decimal('0')
    >>> round_cents("2.345")
    Decimal('2.35')
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Number | None) -> Decimal:
    """Coerce a number (or None) to Decimal; None reads as zero.

    Floats go through str() so 0.1 becomes Decimal('0.1'), not its binary
    expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def safe_divide(numerator: Number, denominator: Number, fallback: Number = 0) -> Decimal:
    """Divide, returning fallback when the denominator is zero.

    Args:
        numerator: Dividend
        denominator: Divisor
        fallback: Value returned when denominator == 0 (default: 0)

    Returns:
        numerator / denominator as Decimal, or the fallback
    """
    denominator = to_decimal(denominator)
    if denominator == 0:
        return to_decimal(fallback)
    return to_decimal(numerator) / denominator


def round_cents(value: Number) -> Decimal:
    """Round to two decimal places, halves away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(part: Number, whole: Number, fallback: Number = 0) -> Decimal:
    """part / whole * 100, with the safe_divide fallback applied before scaling."""
    return safe_divide(part, whole, fallback) * HUNDRED


__all__ = ["CENT", "ZERO", "HUNDRED", "to_decimal", "safe_divide", "round_cents", "percent_of"]
