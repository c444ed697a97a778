"""Number, date and address formatting helpers."""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_ONE = Decimal("1")
_TENTH = Decimal("0.1")


def shorten_address(address: str | None) -> str:
    """Shorten ``0x1234567890...abcd`` style addresses for display."""
    if not address or len(address) < 10:
        return address or "Unknown"
    return f"{address[:6]}...{address[-4:]}"


def round_half_up(value: Decimal, exponent: Decimal = _ONE) -> Decimal:
    """Round like a calculator: 2.5 -> 3, not banker's 2."""
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def format_usd(value: Decimal) -> str:
    """Compact magnitude string: ``~$1.2M``, ``~$15K``, ``~$100``."""
    if value >= 1_000_000:
        return f"~${round_half_up(value / 1_000_000, _TENTH)}M"
    if value >= 1_000:
        return f"~${round_half_up(value / 1_000)}K"
    return f"~${round_half_up(value)}"


def format_period(start: datetime | None, end: datetime | None) -> str:
    """Month-year span such as ``Jan 2024 - Mar 2024``."""
    if start is None or end is None:
        return "No data"
    return f"{start.strftime('%b %Y')} - {end.strftime('%b %Y')}"


def scale_amount(raw: Any, decimals: int) -> Decimal:
    """
    Convert an integer base-unit amount into human units.

    Unparseable inputs scale to zero so callers can discard them with the
    usual ``amount <= 0`` check.
    """
    try:
        value = Decimal(str(raw if raw not in (None, "") else "0"))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return value.scaleb(-decimals)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime, None on failure."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
