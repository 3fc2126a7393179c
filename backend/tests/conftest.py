"""Shared fixtures: candle factories and a fresh application per test."""

from __future__ import annotations

import pytest

from candlescope.models import Candle

BASE_TS = 1_700_000_000_000
STEP_MS = 60_000


def make_bars(ohlc: list[tuple[float, float, float, float]], start: int = BASE_TS) -> list[Candle]:
    """Build one-minute candles from (open, high, low, close) tuples."""
    return [
        Candle(timestamp=start + i * STEP_MS, open=o, high=h, low=l, close=c, volume=1_000.0)
        for i, (o, h, l, c) in enumerate(ohlc)
    ]


def make_closes(closes: list[float], start: int = BASE_TS) -> list[Candle]:
    """Candles whose only interesting field is the close."""
    return make_bars([(c, c * 1.01, c * 0.99, c) for c in closes], start=start)


@pytest.fixture
def bars():
    return make_bars


@pytest.fixture
def closes():
    return make_closes


@pytest.fixture
def settings():
    from candlescope.config import Settings

    return Settings(
        _env_file=None,
        discord_webhook_url="",
        telegram_bot_token="",
        telegram_chat_id="",
    )


@pytest.fixture
def client(settings):
    from fastapi.testclient import TestClient

    from candlescope.main import create_app

    return TestClient(create_app(settings))
