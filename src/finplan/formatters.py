"""Currency formatting for report figures."""

from __future__ import annotations

from typing import Literal

from finplan.rounding import round_half_away, to_fixed

Currency = Literal["TRY", "USD"]

CURRENCY_SYMBOLS: dict[str, str] = {"TRY": "₺", "USD": "$"}


def _symbol(currency: str) -> str:
    try:
        return CURRENCY_SYMBOLS[currency]
    except KeyError:
        raise ValueError(f"Unsupported currency: {currency}") from None


def format_compact(value: float, currency: Currency = "TRY") -> str:
    """Format an amount with K/M suffixes.

    Examples: ``₺150.5K``, ``$2.9M``, ``-₺500``. Amounts between 999950 and
    one million stay in thousands (``₺1000.0K``).
    """
    symbol = _symbol(currency)
    abs_value = abs(value)
    sign = "-" if value < 0 else ""

    if abs_value >= 1_000_000:
        return f"{sign}{symbol}{to_fixed(abs_value / 1_000_000, 1)}M"
    if abs_value >= 1_000:
        return f"{sign}{symbol}{to_fixed(abs_value / 1_000, 1)}K"
    return f"{sign}{symbol}{to_fixed(abs_value, 0)}"


def format_compact_usd(value: float) -> str:
    """Deprecated: use ``format_compact(value, "USD")``."""
    return format_compact(value, "USD")


def format_compact_try(value: float) -> str:
    """Deprecated: use ``format_compact(value, "TRY")``."""
    return format_compact(value, "TRY")


def _group_thousands(value: float, separator: str) -> tuple[str, str]:
    rounded = round_half_away(value, 0)
    sign = "-" if rounded < 0 else ""
    digits = f"{abs(int(rounded)):,}".replace(",", separator)
    return sign, digits


def format_full_usd(value: float) -> str:
    """Whole dollars with comma grouping: ``$150,549``, ``-$1,000``."""
    sign, digits = _group_thousands(value, ",")
    return f"{sign}${digits}"


def format_full_try(value: float) -> str:
    """Whole lira with dot grouping: ``₺150.549``, ``-₺1.000``."""
    sign, digits = _group_thousands(value, ".")
    return f"{sign}₺{digits}"


def format_full(value: float, currency: Currency = "TRY") -> str:
    if currency == "USD":
        return format_full_usd(value)
    if currency == "TRY":
        return format_full_try(value)
    raise ValueError(f"Unsupported currency: {currency}")
