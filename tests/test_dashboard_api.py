"""Tests for cotscope API endpoints with empty and populated data."""

from __future__ import annotations

from datetime import datetime, timezone

import pyarrow as pa
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cotscope.dashboard.app import create_app
from cotscope.data.store.parquet_lake import ParquetLake

MARKETS = ["GOLD", "CRUDE", "SILVER"]


@pytest.fixture
def app_empty(tmp_path):
    """Create app with empty data_dir (no databases)."""
    return create_app(data_dir=str(tmp_path), markets=MARKETS)


@pytest.fixture
def app_with_data(populated_data_dir):
    """Create app over a position store holding GOLD, CRUDE and SILVER."""
    lake = ParquetLake(populated_data_dir / "lake")
    lake.write(
        pa.table({
            "date": ["2026-02-12", "2026-02-13"],
            "symbol": ["GLD", "GLD"],
            "close": [190.2, 191.7],
        }),
        data_type="prices",
        market="GOLD",
        date=datetime(2026, 2, 13, tzinfo=timezone.utc),
    )
    return create_app(data_dir=str(populated_data_dir), markets=MARKETS)


@pytest_asyncio.fixture
async def async_client_empty(app_empty):
    transport = ASGITransport(app=app_empty)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def async_client_data(app_with_data):
    transport = ASGITransport(app=app_with_data)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health_without_store(async_client_empty):
    resp = await async_client_empty.get("/api/health")
    assert resp.status_code == 503
    data = resp.json()
    assert data["api"] == "ok"
    assert data["position_store"] == "unavailable"


@pytest.mark.asyncio
async def test_health_with_store(async_client_data):
    resp = await async_client_data.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["position_store"] == "ok"
    assert data["latest_report"] == "2026-02-17"


# ---------------------------------------------------------------------------
# /api/cot
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cot_dashboard(async_client_data):
    resp = await async_client_data.get("/api/cot", params={"action": "dashboard"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert "timestamp" in body

    data = body["data"]
    assert [m["market"] for m in data["markets"]] == ["GOLD", "CRUDE"]
    assert data["markets"][0]["commercial_signal"] == "EXTREME_BUY"
    assert data["markets"][1]["commercial_signal"] == "EXTREME_SELL"
    assert data["summary"]["total_markets"] == 2
    assert data["summary"]["bullish_count"] == 1
    assert data["summary"]["bearish_count"] == 1
    assert "SILVER" in data["failures"]


@pytest.mark.asyncio
async def test_cot_default_action_is_dashboard(async_client_data):
    resp = await async_client_data.get("/api/cot")
    assert resp.status_code == 200
    assert "markets" in resp.json()["data"]


@pytest.mark.asyncio
async def test_cot_dashboard_empty_store(async_client_empty):
    resp = await async_client_empty.get("/api/cot")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["markets"] == []
    assert set(data["failures"]) == set(MARKETS)


@pytest.mark.asyncio
async def test_cot_extremes(async_client_data):
    resp = await async_client_data.get("/api/cot", params={"action": "extremes"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [s["market"] for s in data["extreme_buys"]] == ["GOLD"]
    assert [s["market"] for s in data["extreme_sells"]] == ["CRUDE"]
    assert data["summary"] == {
        "extreme_buy_count": 1,
        "extreme_sell_count": 1,
        "high_confidence_count": 2,
    }


@pytest.mark.asyncio
async def test_cot_market(async_client_data):
    resp = await async_client_data.get(
        "/api/cot", params={"action": "market", "market": "GOLD", "lookback": 12}
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["current_score"]["report_date"] == "2026-02-17"
    assert data["current_score"]["lookback_weeks"] == 12
    assert len(data["historical"]) == 12
    dates = [s["report_date"] for s in data["historical"]]
    assert dates == sorted(dates)
    assert data["analysis"]["total_weeks"] == 12


@pytest.mark.asyncio
async def test_cot_market_requires_market(async_client_data):
    resp = await async_client_data.get("/api/cot", params={"action": "market"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_cot_market_unknown(async_client_data):
    resp = await async_client_data.get(
        "/api/cot", params={"action": "market", "market": "PLATINUM"}
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cot_market_insufficient_data(async_client_data):
    resp = await async_client_data.get(
        "/api/cot", params={"action": "market", "market": "SILVER"}
    )
    assert resp.status_code == 404
    body = resp.json()
    assert body["message"] == "Insufficient data"
    assert "SILVER" in body["error"]


@pytest.mark.asyncio
async def test_cot_invalid_action(async_client_data):
    resp = await async_client_data.get("/api/cot", params={"action": "backtest"})
    assert resp.status_code == 400
    assert "Invalid action" in resp.json()["message"]


@pytest.mark.asyncio
async def test_cot_signals(async_client_data):
    resp = await async_client_data.get("/api/cot", params={"action": "signals"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    rows = {r["market"]: r for r in data["signal_table"]}
    assert rows["GOLD"]["signal"] == "BUY"
    assert rows["CRUDE"]["signal"] == "SELL"
    assert data["market_stats"] == {
        "strong_buy_setups": 1,
        "strong_sell_setups": 1,
        "extreme_setups": 2,
    }
    assert len(data["setup_opportunities"]) == 2


@pytest.mark.asyncio
async def test_cot_rejects_bad_lookback(async_client_data):
    resp = await async_client_data.get("/api/cot", params={"lookback": 0})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# /api/data and /api/system
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_data_stats(async_client_data):
    resp = await async_client_data.get("/api/data/stats")
    assert resp.status_code == 200
    assert resp.json() == {
        "total_records": 65,
        "latest_date": "2026-02-17",
        "oldest_date": "2025-07-29",
        "markets_with_data": 3,
    }


@pytest.mark.asyncio
async def test_data_stats_empty(async_client_empty):
    resp = await async_client_empty.get("/api/data/stats")
    assert resp.status_code == 200
    assert resp.json()["total_records"] == 0


@pytest.mark.asyncio
async def test_data_positions(async_client_data):
    resp = await async_client_data.get(
        "/api/data/positions", params={"market": "GOLD", "limit": 5}
    )
    assert resp.status_code == 200
    rows = resp.json()
    assert len(rows) == 5
    assert rows[0]["report_date"] == "2026-02-17"
    assert rows[0]["commercial_net"] == 2900


@pytest.mark.asyncio
async def test_data_positions_requires_market(async_client_data):
    resp = await async_client_data.get("/api/data/positions")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_data_prices(async_client_data):
    resp = await async_client_data.get("/api/data/prices", params={"market": "GOLD"})
    assert resp.status_code == 200
    assert [r["date"] for r in resp.json()] == ["2026-02-13", "2026-02-12"]


@pytest.mark.asyncio
async def test_data_prices_empty(async_client_empty):
    resp = await async_client_empty.get("/api/data/prices", params={"market": "GOLD"})
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_system_components(async_client_data):
    resp = await async_client_data.get("/api/system/components")
    assert resp.status_code == 200
    status = {c["name"]: c["status"] for c in resp.json()}
    assert status == {"Position Store": "ok", "Data Lake": "ok"}


@pytest.mark.asyncio
async def test_system_config(async_client_empty, tmp_path):
    resp = await async_client_empty.get("/api/system/config")
    assert resp.status_code == 200
    assert resp.json() == {"data_dir": str(tmp_path), "markets": MARKETS}


@pytest.mark.asyncio
async def test_system_disk_usage_empty(async_client_empty):
    resp = await async_client_empty.get("/api/system/disk-usage")
    assert resp.status_code == 200
    assert all(u["size"] == "Not created" for u in resp.json())
