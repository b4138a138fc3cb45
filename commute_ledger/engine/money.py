"""
Fixed-point money helpers.

Internal amounts live on a 0.0001 grid so that summing shares is exact
and independent of order. Only presentation rounds to cents.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Union


AMOUNT_QUANTUM = Decimal("0.0001")
CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_amount(value: Union[Decimal, int, str]) -> Decimal:
    """Snap a value onto the internal amount grid (banker's rounding)."""
    return Decimal(value).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN)


def round_cents(value: Decimal) -> Decimal:
    """Round to whole cents for display and export."""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def format_amount(value: Decimal, currency_symbol: str = "€") -> str:
    """'12.50€' style rendering used by the CSV report."""
    return f"{round_cents(value)}{currency_symbol}"
