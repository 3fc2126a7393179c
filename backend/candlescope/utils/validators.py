"""
Candlescope - Input Validators

Reusable validation helpers for symbols and timeframes.
Raise ValueError on invalid input so callers can map to 400 responses.
"""

from __future__ import annotations

import re

from candlescope.models import TimeFrame
from candlescope.utils.formatters import format_symbol

# Equities (AAPL, BRK.B), crypto pairs (BTC-USD, BTCUSDT), futures (ES_F)
_SYMBOL_RE = re.compile(r"^[A-Z0-9][A-Z0-9._\-]{0,19}$")

_TIMEFRAMES = {tf.value for tf in TimeFrame}


def validate_symbol(raw: str) -> str:
    """Clean and validate a market symbol.

    Returns the normalized symbol or raises ValueError.

    >>> validate_symbol('aapl')
    'AAPL'
    >>> validate_symbol('btc-usd')
    'BTC-USD'
    """
    symbol = format_symbol(raw)
    if not symbol:
        raise ValueError("Symbol cannot be empty")
    if not _SYMBOL_RE.match(symbol):
        raise ValueError(
            f"Invalid symbol '{symbol}'. Expected 1-20 letters, digits, "
            f"'.', '-' or '_' (e.g. AAPL, BRK.B, BTC-USD)"
        )
    return symbol


def validate_timeframe(raw: str) -> str:
    """Validate a chart timeframe label against the supported set.

    >>> validate_timeframe('1H')
    '1h'
    """
    timeframe = raw.strip()
    if timeframe not in _TIMEFRAMES:
        timeframe = timeframe.lower()
    if timeframe not in _TIMEFRAMES:
        raise ValueError(
            f"Invalid timeframe '{raw}'. Expected one of: {', '.join(sorted(_TIMEFRAMES))}"
        )
    return timeframe
