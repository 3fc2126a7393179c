"""
Candlescope - Shared Formatters

Human-readable formatting for pattern names, prices and epoch-millisecond
timestamps. Used by alert notifications.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone


def format_pattern_name(name: str) -> str:
    """Turn a snake_case pattern name into an upper-case label.

    >>> format_pattern_name('bullish_engulfing')
    'BULLISH ENGULFING'
    """
    return name.replace("_", " ").upper()


def format_price(value: float, decimals: int = 2) -> str:
    """Format a price with thousands separators.

    >>> format_price(43210.5)
    '43,210.50'
    >>> format_price(float('nan'))
    'N/A'
    """
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return "N/A"
    return f"{value:,.{decimals}f}"


def format_symbol(raw: str) -> str:
    """Normalize a symbol to uppercase, stripped of whitespace.

    >>> format_symbol('  btc-usd ')
    'BTC-USD'
    """
    return raw.strip().upper()


def format_timestamp(ms: int) -> str:
    """Format epoch milliseconds as a UTC ISO-8601 string.

    >>> format_timestamp(1_700_000_000_000)
    '2023-11-14T22:13:20+00:00'
    """
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()
