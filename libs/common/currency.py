"""Money helpers for the marketplace ledger.

Storage unit: Decimal with two places, `Numeric(12, 2)`.
Rates are percentages, e.g. Decimal("10.00") means 10%.
All rounding is half-up to the cent.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Coerce to Decimal and round half-up to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Number) -> Decimal:
    return to_money(Decimal(quantity) * to_money(unit_price))


def percent_of(amount: Number, rate: Number) -> Decimal:
    """`amount × rate / 100`, rounded to cents."""
    return to_money(to_money(amount) * Decimal(str(rate)) / HUNDRED)
