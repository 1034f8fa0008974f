"""
Value parsing shared by the billing domain entities.

Rows come back from the database as native types, while API payloads and
fixtures carry ISO-8601 strings (often with a trailing ``Z``). Both are
accepted here and normalised to timezone-aware UTC datetimes and Decimals.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a datetime, ISO string or unix timestamp into an aware UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_decimal(value: Any, default: str = '0') -> Decimal:
    """Parse a numeric value into a Decimal without float artefacts."""
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal(default)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize an optional datetime."""
    return value.isoformat() if value else None
