"""Pure domain engines: candle series, geometry, indicators, patterns, aggregation."""
