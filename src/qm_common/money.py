"""Decimal money helpers.

Prices and totals are Decimal with two fractional digits. Never float:
values arriving as float or str are converted through str() first.
"""

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Convert to a Decimal quantised to cents: 9.5 -> Decimal('9.50')."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def validate_price(price: Decimal) -> None:
    """Prices may be zero (free items) but never negative."""
    if price < 0:
        raise ValueError(f"Price must be non-negative, got {price}")


def money_to_display(amount: Decimal, symbol: str = "$") -> str:
    """Format for display: Decimal('1234.5') -> '$1,234.50', Decimal('-3') -> '-$3.00'."""
    amount = to_money(amount)
    if amount < 0:
        return f"-{symbol}{-amount:,.2f}"
    return f"{symbol}{amount:,.2f}"
