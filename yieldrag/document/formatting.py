"""Number rendering shared by documents and the fallback overview."""

from typing import Optional

NOT_AVAILABLE = "N/A"


def format_percentage(value: float) -> str:
    """12.3456 -> '12.35%'"""
    return f"{value:.2f}%"


def format_optional_percentage(value: Optional[float]) -> str:
    """Like format_percentage, but None renders as N/A."""
    if value is None:
        return NOT_AVAILABLE
    return format_percentage(value)


def format_currency(value: float) -> str:
    """
    Dollar amount with comma thousands separators.

    At most three fraction digits, trailing zeros trimmed:
    1000000 -> '$1,000,000', 1234.5 -> '$1,234.5'
    """
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return f"${text}"


def format_number(value: float) -> str:
    """
    Shortest round-tripping form, without a trailing '.0'.

    73.0 -> '73', 73.456789 -> '73.456789'
    """
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
