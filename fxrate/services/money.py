"""Exact-number and rounding helpers.

Centralized so ingestion, conversion and the API boundary share identical
number semantics: rationals internally, rounding only when presenting.
"""

from __future__ import annotations
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, localcontext
from fractions import Fraction
from typing import Union

Number = Union[int, float, str, Decimal, Fraction]
Amount = Union[Decimal, Fraction]


def to_fraction(value: Number) -> Fraction:
    # floats go through repr so 4.85 means 485/100, not its binary expansion
    if isinstance(value, float):
        return Fraction(repr(value))
    return Fraction(value)


def round_fraction(value: Fraction, precision: int) -> Decimal:
    """Round half away from zero to ``precision`` decimal places."""
    if precision < 0:
        raise ValueError("precision must be >= 0")
    integer_digits = len(str(abs(value.numerator) // value.denominator))
    with localcontext() as ctx:
        # truncate past the last kept digit so quantize sees the true side of a tie
        ctx.prec = integer_digits + precision + 2
        ctx.rounding = ROUND_DOWN
        truncated = Decimal(value.numerator) / Decimal(value.denominator)
        return truncated.quantize(Decimal(f"1e-{precision}"), rounding=ROUND_HALF_UP)


def present(value: Fraction, precision: int) -> Amount:
    """Boundary conversion; ``precision == -1`` keeps the exact rational."""
    if precision == -1:
        return value
    return round_fraction(value, precision)


def apply_fees(value: Fraction, fees_pct: Number) -> Fraction:
    return value * (1 + to_fraction(fees_pct) / 100)
