"""Candlescope - candlestick pattern signals and technical indicators over OHLC bars."""

__version__ = "1.0.0"
