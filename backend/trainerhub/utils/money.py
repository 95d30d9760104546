"""
Money helpers.
All currency arithmetic goes through Decimal quantized to cents; floats are
converted through their string form so 33.33 stays 33.33.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, float, str]


def to_money(value: Optional[MoneyLike]) -> Decimal:
    """
    Convert a value to a cent-quantized Decimal.

    Args:
        value: Decimal, int, float or numeric string; None is treated as zero

    Returns:
        Decimal with exactly two decimal places
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[MoneyLike]) -> Decimal:
    """Sum money values exactly."""
    total = ZERO
    for value in values:
        total += to_money(value)
    return total


def min_money(a: MoneyLike, b: MoneyLike) -> Decimal:
    """Lesser of two amounts."""
    a, b = to_money(a), to_money(b)
    return a if a <= b else b


def non_negative(value: MoneyLike) -> Decimal:
    """Clamp an amount at zero."""
    amount = to_money(value)
    return amount if amount > ZERO else ZERO


def format_money(value: MoneyLike) -> str:
    """Render an amount for descriptions and notes, e.g. "$1,250.00"."""
    return f"${to_money(value):,.2f}"
