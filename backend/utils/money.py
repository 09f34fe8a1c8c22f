"""
Currency arithmetic helpers.

Every monetary value leaving the pricing, coupon and order code goes through
round2() exactly once, half-up to 2 decimal places.
"""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps the shortest repr, so 0.285 stays 0.285 instead of 0.28499999...
        return Decimal(str(value))
    return Decimal(value)


def round2(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount, pct) -> Decimal:
    return round2(to_decimal(amount) * to_decimal(pct) / 100)


def to_paise(amount) -> int:
    # Smallest currency unit, as payment gateways expect it
    return int(round2(amount) * 100)
