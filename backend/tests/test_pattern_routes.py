"""
Pattern & Indicator Route Tests

End-to-end checks of the /v1/api surface against a fresh application per
test (no notification channels configured).
"""

from __future__ import annotations

from conftest import make_bars, make_closes

DOJI_BARS = [
    (100, 105.5, 99.5, 105),
    (105, 110.5, 104.5, 110),
    (105, 106, 104, 105.05),
]

FILLER = [(95 + i * 0.1, 95.8 + i * 0.1, 94.6 + i * 0.1, 95.5 + i * 0.1) for i in range(7)]
SOLDIERS = [
    (100, 105.5, 99.8, 105),
    (102, 108.5, 101.8, 108),
    (105, 112.5, 104.8, 112),
]


def _payload(rows, symbol="aapl", timeframe="1h"):
    return {
        "symbol": symbol,
        "timeframe": timeframe,
        "candles": [c.model_dump() for c in make_bars(rows)],
    }


# ──────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────

class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["rules"] == 14
        assert data["tracked_symbols"] == 0
        assert data["notification_channels"] == []

    def test_request_id_header(self, client):
        resp = client.get("/v1/api/patterns/config")
        assert resp.headers.get("X-Request-ID")
        assert resp.headers.get("X-API-Version") == "v1"


# ──────────────────────────────────────────────
# Stateless detection
# ──────────────────────────────────────────────

class TestDetectRoute:

    def test_detect_doji(self, client):
        resp = client.post("/v1/api/patterns/detect", json=_payload(DOJI_BARS))
        assert resp.status_code == 200
        data = resp.json()
        assert data["symbol"] == "AAPL"
        assert data["timeframe"] == "1h"
        assert data["candle_count"] == 3
        assert [p["pattern_name"] for p in data["patterns"]] == ["doji"]
        assert data["patterns"][0]["pattern_type"] == "neutral"

    def test_detect_does_not_store(self, client):
        client.post("/v1/api/patterns/detect", json=_payload(DOJI_BARS))
        resp = client.get("/v1/api/patterns/AAPL?raw=true")
        assert resp.json()["count"] == 0

    def test_too_few_candles(self, client):
        resp = client.post("/v1/api/patterns/detect", json=_payload(DOJI_BARS[:2]))
        assert resp.status_code == 400
        data = resp.json()
        assert data["error"] is True
        assert data["detail"] == "At least 3 candles required for pattern detection"

    def test_repeated_timestamps_count_as_one_bar(self, client):
        payload = _payload(DOJI_BARS)
        for candle in payload["candles"]:
            candle["timestamp"] = payload["candles"][0]["timestamp"]
        resp = client.post("/v1/api/patterns/detect", json=payload)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "At least 3 candles required for pattern detection"

    def test_invalid_symbol(self, client):
        resp = client.post("/v1/api/patterns/detect", json=_payload(DOJI_BARS, symbol="$$$"))
        assert resp.status_code == 400

    def test_invalid_timeframe(self, client):
        resp = client.post("/v1/api/patterns/detect", json=_payload(DOJI_BARS, timeframe="7m"))
        assert resp.status_code == 400

    def test_out_of_order_candles(self, client):
        payload = _payload(DOJI_BARS)
        payload["candles"].reverse()
        resp = client.post("/v1/api/patterns/detect", json=payload)
        assert resp.status_code == 400
        assert "earlier than previous bar" in resp.json()["detail"]

    def test_malformed_candle(self, client):
        payload = _payload(DOJI_BARS)
        del payload["candles"][0]["close"]
        resp = client.post("/v1/api/patterns/detect", json=payload)
        assert resp.status_code == 422
        assert resp.json()["errors"]


# ──────────────────────────────────────────────
# Live scans & history
# ──────────────────────────────────────────────

class TestScanAndHistory:

    def test_scan_stores_signal(self, client):
        resp = client.post("/v1/api/patterns/scan", json=_payload(FILLER + SOLDIERS))
        assert resp.status_code == 200
        data = resp.json()
        assert data["detected"] == 1
        assert [s["pattern_name"] for s in data["accepted"]] == ["three_white_soldiers"]
        assert data["alerts"][0]["title"] == "🟢 THREE WHITE SOLDIERS detected on AAPL"

        history = client.get("/v1/api/patterns/AAPL").json()
        assert history["count"] == 1
        assert history["patterns"][0]["pattern_name"] == "three_white_soldiers"

    def test_scan_repeat_deduplicated(self, client):
        payload = _payload(FILLER + SOLDIERS)
        client.post("/v1/api/patterns/scan", json=payload)
        data = client.post("/v1/api/patterns/scan", json=payload).json()
        assert data["accepted"] == []
        assert client.get("/v1/api/patterns/AAPL").json()["count"] == 1

    def test_scan_insufficient(self, client):
        data = client.post("/v1/api/patterns/scan", json=_payload(SOLDIERS)).json()
        assert data["skipped_reason"] == "insufficient_candles"
        assert data["accepted"] == []

    def test_analytics(self, client):
        client.post("/v1/api/patterns/scan", json=_payload(FILLER + SOLDIERS))
        data = client.get("/v1/api/patterns/aapl/analytics").json()
        assert data["symbol"] == "AAPL"
        assert data["total_detected"] == 1
        assert data["bullish_count"] == 1
        assert data["patterns_per_hour"] == 1

    def test_filtered_vs_raw(self, client):
        client.post("/v1/api/patterns/scan", json=_payload(FILLER + SOLDIERS))
        client.patch("/v1/api/patterns/config", json={"min_confidence": 0.9})
        assert client.get("/v1/api/patterns/AAPL").json()["count"] == 0
        assert client.get("/v1/api/patterns/AAPL?raw=true").json()["count"] == 1

    def test_clear_symbol(self, client):
        client.post("/v1/api/patterns/scan", json=_payload(FILLER + SOLDIERS))
        resp = client.delete("/v1/api/patterns/AAPL")
        assert resp.json() == {"symbol": "AAPL", "removed": 1}
        assert client.get("/v1/api/patterns/AAPL?raw=true").json()["count"] == 0

    def test_clear_all(self, client):
        client.post("/v1/api/patterns/scan", json=_payload(FILLER + SOLDIERS))
        client.post("/v1/api/patterns/scan", json=_payload(FILLER + SOLDIERS, symbol="msft"))
        assert client.delete("/v1/api/patterns").json() == {"removed": 2}


# ──────────────────────────────────────────────
# Configuration
# ──────────────────────────────────────────────

class TestConfigRoutes:

    def test_get_config(self, client):
        data = client.get("/v1/api/patterns/config").json()
        assert data["min_confidence"] == 0.6
        assert "doji" in data["enabled_patterns"]
        assert data["enabled_patterns"] == sorted(data["enabled_patterns"])

    def test_patch_config(self, client):
        resp = client.patch(
            "/v1/api/patterns/config",
            json={"show_bearish": False, "enabled_patterns": ["Doji", "hammer"]},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["show_bearish"] is False
        assert data["enabled_patterns"] == ["doji", "hammer"]
        assert data["min_confidence"] == 0.6

    def test_patch_invalid_rejected(self, client):
        resp = client.patch("/v1/api/patterns/config", json={"max_patterns": 0})
        assert resp.status_code == 422
        assert resp.json()["errors"][0]["field"] == "max_patterns"
        assert client.get("/v1/api/patterns/config").json()["max_patterns"] == 100


# ──────────────────────────────────────────────
# Indicators
# ──────────────────────────────────────────────

class TestIndicatorRoute:

    def test_indicators(self, client):
        candles = [c.model_dump() for c in make_closes([100 + i for i in range(30)])]
        resp = client.post("/v1/api/indicators", json={"candles": candles, "sma_period": 5})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["sma"]) == 30
        assert data["sma"][3] is None
        assert data["sma"][4] == 102.0
        assert data["params"]["sma_period"] == 5
        assert data["params"]["rsi_period"] == 14
        assert data["rsi"][14] == 50.0

    def test_invalid_period(self, client):
        candles = [c.model_dump() for c in make_closes([100.0] * 5)]
        resp = client.post("/v1/api/indicators", json={"candles": candles, "rsi_period": 0})
        assert resp.status_code == 422
