# Shared utilities: formatters, validators
from candlescope.utils.formatters import (
    format_pattern_name,
    format_price,
    format_symbol,
    format_timestamp,
)
from candlescope.utils.validators import validate_symbol, validate_timeframe

__all__ = [
    "format_pattern_name",
    "format_price",
    "format_symbol",
    "format_timestamp",
    "validate_symbol",
    "validate_timeframe",
]
