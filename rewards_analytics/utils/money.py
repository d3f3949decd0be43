"""Decimal helpers for monetary values"""

from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Quantize any numeric value to cents"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """Convert floats via their repr so 0.1 stays 0.1"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100, or 0 when the denominator is 0"""
    if denominator == 0:
        return ZERO
    return to_money(numerator / denominator * 100)
