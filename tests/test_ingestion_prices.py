"""Tests for the Alpha Vantage client and PriceIngestPipeline.

HTTP is served by ``httpx.MockTransport`` -- no network access.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import httpx
import pytest

from cotscope.config.markets import MARKETS
from cotscope.data.ingestion.prices import (
    AlphaVantageClient,
    PriceAPIError,
    PriceBar,
    PriceIngestPipeline,
)
from cotscope.data.store.parquet_lake import ParquetLake

RUN_DATE = datetime(2026, 2, 6, tzinfo=timezone.utc)


def _bar(o, h, l, c, v=None):
    bar = {"1. open": str(o), "2. high": str(h), "3. low": str(l), "4. close": str(c)}
    if v is not None:
        bar["5. volume"] = str(v)
    return bar


FX_PAYLOAD = {
    "Meta Data": {"1. Information": "Forex Daily Prices"},
    "Time Series FX (Daily)": {
        "2026-02-04": _bar(1.0801, 1.0850, 1.0790, 1.0840),
        "2026-02-05": _bar(1.0840, 1.0900, 1.0820, 1.0888),
    },
}

EQUITY_PAYLOAD = {
    "Meta Data": {"2. Symbol": "GLD"},
    "Time Series (Daily)": {
        "2026-02-05": _bar(190.1, 192.0, 189.5, 191.7, 8_000_000),
        "2026-02-04": _bar(188.0, 190.5, 187.9, 190.2, 7_500_000),
    },
}


def _client(payload=None, status=200, seen=None, api_key="test-key"):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(dict(request.url.params))
        return httpx.Response(status, json=payload or {})

    return AlphaVantageClient(
        api_key=api_key,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestAlphaVantageClient:
    def test_fx_daily_request_and_parse(self):
        seen = []
        bars = _client(FX_PAYLOAD, seen=seen).fetch_fx_daily("EUR", "USD")

        assert seen[0]["function"] == "FX_DAILY"
        assert seen[0]["from_symbol"] == "EUR"
        assert seen[0]["to_symbol"] == "USD"
        assert seen[0]["apikey"] == "test-key"
        assert [b.date for b in bars] == [date(2026, 2, 5), date(2026, 2, 4)]
        assert bars[0] == PriceBar("EUR/USD", date(2026, 2, 5), 1.0840, 1.0900, 1.0820, 1.0888)

    def test_equity_daily_has_volume(self):
        bars = _client(EQUITY_PAYLOAD).fetch_equity_daily("GLD")
        assert bars[0].symbol == "GLD"
        assert bars[0].volume == 8_000_000.0

    def test_fetch_for_market_routes_by_kind(self):
        seen = []
        client = _client(EQUITY_PAYLOAD, seen=seen)
        client.fetch_for_market(MARKETS["GOLD"], output_size="full")
        assert seen[0]["function"] == "TIME_SERIES_DAILY"
        assert seen[0]["symbol"] == "GLD"
        assert seen[0]["outputsize"] == "full"

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("ALPHA_VANTAGE_API_KEY", raising=False)
        client = _client(FX_PAYLOAD, api_key=None)
        with pytest.raises(PriceAPIError, match="API key"):
            client.fetch_fx_daily("EUR", "USD")

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "env-key")
        assert AlphaVantageClient(client=httpx.Client()).api_key == "env-key"

    def test_http_error(self):
        with pytest.raises(PriceAPIError, match="HTTP 500"):
            _client({}, status=500).fetch_equity_daily("GLD")

    @pytest.mark.parametrize("key", ["Error Message", "Note", "Information"])
    def test_error_payloads(self, key):
        with pytest.raises(PriceAPIError):
            _client({key: "nope"}).fetch_equity_daily("GLD")

    def test_missing_series_key(self):
        with pytest.raises(PriceAPIError, match="Invalid"):
            _client({"Meta Data": {}}).fetch_fx_daily("EUR", "USD")


class TestPriceIngestPipeline:
    @pytest.fixture
    def lake(self, tmp_lake_dir):
        return ParquetLake(tmp_lake_dir)

    def test_run_archives_bars(self, lake):
        pipeline = PriceIngestPipeline(lake, _client(FX_PAYLOAD))

        assert pipeline.run("EUR/USD", RUN_DATE) is True
        assert pipeline.last_result.new_records == 2

        rows = lake.read("prices", "EUR/USD")
        assert [r["date"] for r in rows] == ["2026-02-05", "2026-02-04"]
        assert rows[0]["close"] == 1.0888
        assert rows[0]["volume"] is None

    def test_rerun_counts_known_dates_as_skipped(self, lake):
        pipeline = PriceIngestPipeline(lake, _client(EQUITY_PAYLOAD))
        pipeline.run("GOLD", RUN_DATE)
        pipeline.run("GOLD", RUN_DATE)
        assert pipeline.last_result.new_records == 0
        assert pipeline.last_result.skipped_records == 2

    def test_unknown_market_fails(self, lake):
        pipeline = PriceIngestPipeline(lake, _client(EQUITY_PAYLOAD))
        assert pipeline.run("PLATINUM", RUN_DATE) is False
        assert "No price mapping" in pipeline.last_result.message

    def test_api_error_fails_run(self, lake):
        pipeline = PriceIngestPipeline(lake, _client({"Note": "rate limited"}))
        assert pipeline.run("GOLD", RUN_DATE) is False
        assert "rate limit" in pipeline.last_result.message

    def test_validate_drops_bad_bars(self, lake):
        pipeline = PriceIngestPipeline(lake, _client())
        good = PriceBar("GLD", date(2026, 2, 5), 1.0, 2.0, 0.5, 1.5)
        zero = PriceBar("GLD", date(2026, 2, 4), 0.0, 2.0, 0.5, 1.5)
        inverted = PriceBar("GLD", date(2026, 2, 3), 1.0, 0.5, 2.0, 1.5)

        cleaned, warnings = pipeline.validate({"records": [good, zero, inverted]})

        assert cleaned["records"] == [good]
        assert len(warnings) == 2
