"""
Currency helpers.

Amounts are Dominican pesos handled as ``Decimal`` and rounded half away
from zero to two places.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artifacts (0.1 -> 0.1000000000000000055...)
    return Decimal(str(value))


def money(value: Decimal | int | float | str | None) -> Decimal:
    """Round to cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(base: Decimal, percent: Decimal | int | float) -> Decimal:
    """``percent`` is expressed in points (10 means 10%)."""
    return money(to_decimal(base) * to_decimal(percent) / Decimal(100))
