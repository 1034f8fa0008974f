"""
Money and date helpers shared by the gateway adapter and the API layer.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from .config import DEFAULT_CURRENCY, MINOR_UNITS_PER_MAJOR

CURRENCY_SYMBOLS = {
    'MYR': 'RM',
    'USD': '$',
    'SGD': 'S$',
}


def to_minor_units(amount: Union[Decimal, int, float, str]) -> int:
    """
    Convert a major-unit amount to gateway minor units (cents).

    Rounds half away from zero, so 0.005 becomes 1 and 19.99 becomes 1999.
    Floats are converted through ``str`` to avoid binary artefacts.

    Args:
        amount: Amount in major units

    Returns:
        Integer amount in minor units
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * MINOR_UNITS_PER_MAJOR).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / MINOR_UNITS_PER_MAJOR).quantize(Decimal('0.01'))


def format_currency(amount: Union[Decimal, int, float, str], currency: str = DEFAULT_CURRENCY) -> str:
    """Format an amount for display, e.g. ``RM 1,234.50``."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    value = value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    code = (currency or DEFAULT_CURRENCY).upper()
    symbol = CURRENCY_SYMBOLS.get(code, code)
    sign = '-' if value < 0 else ''
    return f"{sign}{symbol} {abs(value):,.2f}"


def format_date(value: Optional[datetime]) -> str:
    """Format a timestamp as ``19 October 2026``; empty string for None."""
    if value is None:
        return ''
    return f"{value.day} {value.strftime('%B %Y')}"
