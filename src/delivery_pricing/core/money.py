"""Integer-cent arithmetic helpers.

Every monetary rounding in the package goes through ``round_half_up`` so that
fares and discounts reproduce exactly across runs and platforms.
"""

import math
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import InvalidInputError

CURRENCY_SYMBOLS: dict[str, str] = {
    "CAD": "$",
    "USD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
}


def to_decimal(value: int | float | Decimal) -> Decimal:
    """Convert a number to Decimal via its shortest repr (0.1 -> Decimal("0.1"))."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidInputError(f"Non-finite value: {value}")
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def multiply_cents(amount: int | float | Decimal, *factors: int | float | Decimal) -> int:
    """Multiply exactly and round once at the end."""
    result = to_decimal(amount)
    for factor in factors:
        result *= to_decimal(factor)
    return round_half_up(result)


def format_cents(amount_cents: int, currency: str) -> str:
    """Format cents for display, e.g. ``format_cents(1097, "CAD") == "CAD $10.97"``."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), "")
    sign = "-" if amount_cents < 0 else ""
    dollars, cents = divmod(abs(amount_cents), 100)
    return f"{currency.upper()} {sign}{symbol}{dollars}.{cents:02d}"
