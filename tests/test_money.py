"""
Money helper tests.
"""

from decimal import Decimal

import pytest

from trainerhub.utils.money import ZERO, to_money, sum_money, min_money, non_negative, format_money


def test_to_money_quantizes_to_cents():
    assert to_money("100") == Decimal("100.00")
    assert str(to_money("100")) == "100.00"
    assert to_money(Decimal("10.005")) == Decimal("10.01")


def test_to_money_float_uses_decimal_text():
    # 33.33 as a binary float is 33.3299999..., which must not round down
    assert to_money(33.33) == Decimal("33.33")
    assert to_money(0.1) + to_money(0.2) == Decimal("0.30")


def test_to_money_none_is_zero():
    assert to_money(None) == ZERO


def test_sum_money_has_no_drift():
    assert sum_money(["0.10"] * 10) == Decimal("1.00")
    assert sum_money([]) == ZERO


def test_min_money_and_non_negative():
    assert min_money("33.33", "100") == Decimal("33.33")
    assert non_negative("-5") == ZERO
    assert non_negative("5") == Decimal("5.00")


@pytest.mark.parametrize(
    "value,expected",
    [("1250", "$1,250.00"), ("0", "$0.00"), ("66.666", "$66.67")],
)
def test_format_money(value, expected):
    assert format_money(value) == expected
