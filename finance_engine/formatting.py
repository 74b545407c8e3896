"""Formatting utilities for amounts and score deltas."""

from __future__ import annotations

from typing import Dict, Union

CURRENCY_SYMBOLS: Dict[str, str] = {
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'INR': '₹',
    'JPY': '¥',
}


def format_currency(amount: Union[float, int], currency: str = 'USD', include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators.

    Args:
        amount: The amount to format
        currency: ISO-4217 code; known codes render with their symbol
        include_sign: Whether to include the symbol or code

    Returns:
        Formatted currency string (e.g. "$1,234.56", "-$100.00" or "1,234.56 CHF")

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(-100, 'USD')
        '-$100.00'
        >>> format_currency(1234.56, 'CHF')
        '1,234.56 CHF'
    """
    formatted = f"{abs(amount):,.2f}"
    sign = '-' if amount < 0 else ''
    if not include_sign:
        return f"{sign}{formatted}"
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{sign}{symbol}{formatted}"
    return f"{sign}{formatted} {currency.upper()}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def format_points(delta: int) -> str:
    """Format a score delta with an explicit sign (``+10``, ``-20``, ``0``)."""
    if delta > 0:
        return f"+{delta}"
    return str(delta)
