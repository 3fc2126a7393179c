"""
Candlescope - Indicator Routes

SMA, EMA, RSI, MACD and Bollinger Bands for a posted candle series.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from candlescope.engines.candle_series import CandleSeries
from candlescope.engines.ta_engine import IndicatorLibrary
from candlescope.models import IndicatorRequest, IndicatorSet

indicators_router = APIRouter()


@indicators_router.post("/indicators", response_model=IndicatorSet)
async def compute_indicators(body: IndicatorRequest, request: Request):
    """Compute every indicator; omitted periods fall back to the configured defaults."""
    library: IndicatorLibrary = request.app.state.indicators
    overrides = body.model_dump(exclude={"candles"}, exclude_none=True)
    params = library.params.model_copy(update=overrides) if overrides else library.params

    series = CandleSeries(body.candles)
    return library.compute_all(series.candles, params)
