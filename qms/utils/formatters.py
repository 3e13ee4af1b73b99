"""
Formatting helpers for exported documents (PDF, CSV, XLSX).
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional


def format_date(value: Union[date, datetime, str, None]) -> str:
    """
    Format a date as DD/MM/YYYY.

    Examples:
        format_date(date(2026, 1, 12)) -> "12/01/2026"
        format_date(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")


def format_long_date(value: Union[date, datetime, None]) -> str:
    """Format a date as "January 12, 2026" (report headers)."""
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def month_label(value: Union[date, datetime]) -> str:
    """Format a period as "Jan 2026"."""
    return value.strftime("%b %Y")


def format_percentage(value: Union[int, float, Decimal, None], decimals: int = 1) -> str:
    """
    Format a percentage value.

    Examples:
        format_percentage(33.333) -> "33.3%"
        format_percentage(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{float(value):.{decimals}f}%"


def format_number(value: Union[int, float, Decimal, str, None], decimals: Optional[int] = None) -> str:
    """
    Format a number with thousands separators, dropping insignificant decimals.

    Examples:
        format_number(1500) -> "1,500"
        format_number(1500.50) -> "1,500.5"
        format_number(1500.5, decimals=2) -> "1,500.50"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if decimals is not None:
        return f"{num:,.{decimals}f}"

    if num == num.to_integral_value():
        return f"{int(num):,}"

    text = f"{num:,f}"
    return text.rstrip('0').rstrip('.')
