# tests/test_routes.py
"""
Route Tests - Unit Tests for the HTTP Consumer Boundary

Runs the FastAPI app with TestClient against in-memory providers.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- crashrisk.app (create_app)
- tests.fakes (in-memory aggregator)
- fastapi.testclient (TestClient)
"""
import pytest
from fastapi.testclient import TestClient

from crashrisk.app import create_app
from crashrisk.application.poller import DashboardPoller
from crashrisk.domain.errors import ErrorCode, ProviderError
from fakes import FRED_VALUES, AnyQuote, FakeSource, make_aggregator

QUOTE_ERROR_KEYS = {"error", "code", "value", "change", "changePercent", "timestamp"}


def _client(**aggregator_kwargs):
    poller = DashboardPoller(aggregator=make_aggregator(**aggregator_kwargs), interval_seconds=30)
    return TestClient(create_app(poller=poller, start_scheduler=False))


@pytest.fixture
def client():
    return _client()


class TestEconomicIndicators:
    def test_indicator(self, client):
        resp = client.get("/api/economic-indicators/cape")
        assert resp.status_code == 200
        body = resp.json()
        assert body["value"] == 39.2
        assert body["status"] == "danger"
        assert body["historicalAvg"] == 16.8
        assert body["warningLevel"] == 25.0
        assert body["dangerLevel"] == 30.0
        assert "error" not in body

    def test_degraded_indicator_still_200(self):
        fred = FakeSource("fred", FRED_VALUES, errors={
            "T10Y3M": [ProviderError("FRED API key is not configured", ErrorCode.MISSING_CREDENTIALS, "fred")],
        })
        resp = _client(fred=fred).get("/api/economic-indicators/yield-curve")
        assert resp.status_code == 200
        body = resp.json()
        assert body["value"] == 1.5
        assert body["status"] == "safe"
        assert "not configured" in body["error"]

    @pytest.mark.parametrize("name", ["unknown", "vix"])
    def test_unknown_indicator(self, client, name):
        assert client.get(f"/api/economic-indicators/{name}").status_code == 404


class TestMarketData:
    def test_index(self, client):
        resp = client.get("/api/market-data/sp500")
        assert resp.status_code == 200
        body = resp.json()
        assert body["value"] == pytest.approx(1000.0)
        assert set(body) == {"value", "change", "changePercent", "timestamp"}

    def test_vix(self, client):
        resp = client.get("/api/market-data/vix")
        assert resp.status_code == 200
        assert resp.json()["value"] == pytest.approx(26.42)

    def test_stock(self, client):
        assert client.get("/api/market-data/stocks/AAPL").status_code == 200

    def test_failed_stock_returns_500(self):
        finnhub = AnyQuote("finnhub", errors={"TSLA": [ProviderError("zero price", ErrorCode.ZERO_VALUE)]})
        alphavantage = AnyQuote("alphavantage", errors={"TSLA": [ProviderError("no key", ErrorCode.MISSING_CREDENTIALS)]})
        client = _client(finnhub=finnhub, alphavantage=alphavantage, attempts=0)

        resp = client.get("/api/market-data/stocks/TSLA")

        assert resp.status_code == 500
        body = resp.json()
        assert set(body) == QUOTE_ERROR_KEYS
        assert body["value"] == body["change"] == body["changePercent"] == 0
        assert body["code"] == "ZERO_VALUE"

    def test_invalid_stock_symbol(self, client):
        resp = client.get("/api/market-data/stocks/$$$")
        assert resp.status_code == 404
        assert resp.json()["code"] == "UNSUPPORTED_INSTRUMENT"

    def test_crypto(self, client):
        assert client.get("/api/market-data/crypto/btc").status_code == 200

    def test_unsupported_crypto(self, client):
        resp = client.get("/api/market-data/crypto/DOGE")
        assert resp.status_code == 404
        body = resp.json()
        assert set(body) == QUOTE_ERROR_KEYS
        assert body["code"] == "UNSUPPORTED_INSTRUMENT"

    def test_commodity(self, client):
        resp = client.get("/api/market-data/commodities/gold")
        assert resp.status_code == 200
        assert resp.json()["value"] == 2650.0

    def test_unsupported_commodity(self, client):
        assert client.get("/api/market-data/commodities/copper").status_code == 404

    def test_unsupported_index(self, client):
        resp = client.get("/api/market-data/ftse")
        assert resp.status_code == 404
        assert resp.json()["code"] == "UNSUPPORTED_INSTRUMENT"


class TestCrashRiskAndHealth:
    def test_health_before_first_poll(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "starting"

    def test_crash_risk_triggers_poll(self, client):
        resp = client.get("/api/crash-risk")
        assert resp.status_code == 200
        body = resp.json()
        assert 0 <= body["breakdown"]["totalScore"] <= 100
        assert body["breakdown"]["riskLevel"] in {"Low", "Moderate", "Elevated", "High", "Critical"}
        assert body["indicators"]["cape"]["status"] == "danger"
        assert body["errors"] == {}

        health = client.get("/api/health").json()
        assert health["status"] == "healthy"
        assert health["overall_healthy"] is True

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"
