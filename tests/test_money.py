from __future__ import annotations

from decimal import Decimal
from fractions import Fraction

import pytest

from fxrate.services.money import apply_fees, present, round_fraction, to_fraction


def test_float_is_read_as_its_decimal_repr() -> None:
    assert to_fraction(4.85) == Fraction(485, 100)
    assert to_fraction("0.1") + to_fraction(0.2) == Fraction(3, 10)


def test_round_half_away_from_zero() -> None:
    assert round_fraction(Fraction(5, 2), 0) == Decimal("3")
    assert round_fraction(Fraction(-5, 2), 0) == Decimal("-3")
    assert round_fraction(Fraction(1, 3), 5) == Decimal("0.33333")
    assert round_fraction(Fraction(2, 3), 2) == Decimal("0.67")


def test_round_keeps_requested_scale() -> None:
    assert str(round_fraction(Fraction(7), 2)) == "7.00"


def test_negative_precision_is_rejected() -> None:
    with pytest.raises(ValueError):
        round_fraction(Fraction(1), -2)


def test_present_exact_keeps_fraction() -> None:
    assert present(Fraction(1, 3), -1) == Fraction(1, 3)


def test_fees_are_percent_markup() -> None:
    assert apply_fees(Fraction(100), "1.5") == Fraction("101.5")
    assert apply_fees(Fraction(100), 0) == 100


def test_round_uses_exact_value_near_a_tie() -> None:
    just_below = Fraction(1, 8) - Fraction(1, 10**12)
    just_above = Fraction(1, 8) + Fraction(1, 10**12)
    assert round_fraction(just_below, 2) == Decimal("0.12")
    assert round_fraction(Fraction(1, 8), 2) == Decimal("0.13")
    assert round_fraction(just_above, 2) == Decimal("0.13")
    assert round_fraction(Fraction(99999, 10000), 2) == Decimal("10.00")
