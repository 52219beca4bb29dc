"""
PULSE SCANNER: Integration Tests for the HTTP API
"""
import asyncio
import time

import numpy as np
import pytest
from fastapi.testclient import TestClient

from pulse_scanner.api.app import create_app
from pulse_scanner.container import build_services
from pulse_scanner.utils.errors import ExchangeError


@pytest.fixture
def services(app_settings, fake_adapter, sample_ohlcv_df, trending_up_df):
    fake_adapter.klines = {"AAAUSDT": trending_up_df, "SAMPLEUSDT": sample_ohlcv_df}
    svc = build_services(app_settings, adapter=fake_adapter, rng=np.random.default_rng(0))
    asyncio.run(svc.store.update_coin_metadata("AAAUSDT", 50_000_000.0, name="AAA"))
    return svc


@pytest.fixture
def client(services):
    app = create_app(services, autostart=False)
    with TestClient(app) as c:
        yield c


class TestSystemEndpoints:
    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        data = response.json()
        assert "app" in data
        assert data["components"]["indicators_registered"] == 10
        assert data["components"]["refresh"]["state"] == "idle"


class TestMarketEndpoints:
    def test_progress_initial(self, client):
        data = client.get("/api/v1/progress").json()
        assert data["progress"] == 100.0
        assert data["state"] == "idle"

    def test_refresh_then_pairs(self, client):
        assert client.get("/api/v1/pairs").json()["count"] == 0
        assert client.post("/api/v1/refresh").json() == {"triggered": True}

        data = {}
        for _ in range(100):
            data = client.get("/api/v1/pairs").json()
            if data["count"]:
                break
            time.sleep(0.01)
        assert [p["symbol"] for p in data["pairs"]] == ["AAAUSDT", "BBBUSDT"]
        assert data["pairs"][0]["velocity_trend"] in ("accelerating", "decelerating", "stable")


class TestAnalyticsEndpoints:
    def test_indicators(self, client):
        response = client.get("/api/v1/indicators/SAMPLEUSDT", params={"timeframe": "15m"})
        assert response.status_code == 200
        data = response.json()
        assert data["timeframe"] == "15m"
        assert data["candles"] == 100
        assert 0 <= data["indicators"]["rsi"] <= 100
        assert set(data["indicators"]["macd"]) == {"macd_line", "signal_line", "histogram"}

    def test_unknown_symbol(self, client):
        assert client.get("/api/v1/indicators/NOPEUSDT").status_code == 404

    def test_invalid_timeframe(self, client):
        assert client.get("/api/v1/indicators/SAMPLEUSDT", params={"timeframe": "2h"}).status_code == 422

    def test_exchange_error_mapped(self, client, fake_adapter):
        fake_adapter.kline_error = ExchangeError("rate limited", "klines")
        response = client.get("/api/v1/patterns/AAAUSDT")
        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "EXCHANGE_KLINES_ERROR"
        assert body["message"] == "rate limited"

    def test_patterns(self, client):
        response = client.get("/api/v1/patterns/AAAUSDT", params={"timeframe": "1h"})
        assert response.status_code == 200
        types = [p["type"] for p in response.json()["patterns"]]
        assert "Volume Spike" in types


class TestPredictionEndpoints:
    def test_run_and_read_predictions(self, client):
        response = client.post("/api/v1/predictions/run")
        assert response.status_code == 200
        data = response.json()
        assert data["generated"]["1h"] == 1
        assert data["top_picks"][0]["trading_pair"] == "AAAUSDT"

        preds = client.get("/api/v1/predictions/1h").json()["predictions"]
        assert [p["trading_pair"] for p in preds] == ["AAAUSDT"]
        assert preds[0]["market_cap"] == 50_000_000.0

        picks = client.get("/api/v1/top-picks").json()
        assert picks["count"] == 1
        assert picks["top_picks"][0]["selection_reason"].startswith("Predicted to rise")

    def test_predictions_empty_before_run(self, client):
        data = client.get("/api/v1/predictions/4h").json()
        assert data == {"timeframe": "4h", "predictions": []}
