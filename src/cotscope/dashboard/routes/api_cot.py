"""COT scoring endpoint: one route, four views selected by ``action``.

    GET /api/cot?action=dashboard            ranked latest scores + bias summary
    GET /api/cot?action=extremes             extreme buys / sells / setups
    GET /api/cot?action=market&market=GOLD   full history + analysis for a market
    GET /api/cot?action=signals              compact BUY/SELL signal table
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

from cotscope.config.markets import MARKETS
from cotscope.dashboard.data_access import DashboardData
from cotscope.signals.sentiment.cot_scoring import (
    DEFAULT_LOOKBACK_WEEKS,
    InsufficientDataError,
)
from cotscope.signals.sentiment.scanner import (
    MarketScanner,
    analyze_history,
    signal_table,
    summarize,
)

logger = structlog.get_logger(__name__)

router = APIRouter()

ACTIONS = ("dashboard", "extremes", "market", "signals")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(message: str, status_code: int, error: str | None = None) -> JSONResponse:
    content = {"success": False, "message": message, "timestamp": _timestamp()}
    if error is not None:
        content["error"] = error
    return JSONResponse(content=content, status_code=status_code)


def _ok(message: str, data: dict) -> JSONResponse:
    return JSONResponse(content={
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _timestamp(),
    })


@router.get("/cot")
async def cot(
    request: Request,
    action: str = Query("dashboard"),
    market: str | None = Query(None),
    lookback: int = Query(DEFAULT_LOOKBACK_WEEKS, ge=1),
):
    """COT scoring views; see module docstring for the actions."""
    if action not in ACTIONS:
        return _error(f"Invalid action. Use: {', '.join(ACTIONS)}", 400)
    if action == "market" and not market:
        return _error("market parameter required for market analysis", 400)

    data = DashboardData(request.app.state.data_dir)
    store = data.get_position_store(create=True)
    if store is None:
        return _error("Position store unavailable", 503)

    scanner = MarketScanner(store, request.app.state.markets, lookback_weeks=lookback)
    try:
        if action == "dashboard":
            scores = scanner.score_all_markets()
            return _ok(
                f"COT analysis for {len(scores)} markets",
                {
                    "markets": [s.to_dict() for s in scores],
                    "summary": summarize(scores),
                    "failures": scanner.failures,
                },
            )

        if action == "extremes":
            extremes = scanner.find_extreme_signals()
            return _ok(
                "COT extreme signals analysis",
                {
                    "extreme_buys": [s.to_dict() for s in extremes.extreme_buys],
                    "extreme_sells": [s.to_dict() for s in extremes.extreme_sells],
                    "high_confidence_setups": [
                        s.to_dict() for s in extremes.high_confidence_setups
                    ],
                    "summary": extremes.summary(),
                },
            )

        if action == "market":
            if market not in MARKETS:
                return _error(f"Unknown market: {market}", 404)
            scores = scanner.score_market(market, lookback)
            if not scores:
                return _error(f"No scores calculated for market {market}", 404)
            return _ok(
                f"COT analysis for market {market}",
                {
                    "current_score": scores[-1].to_dict(),
                    "historical": [s.to_dict() for s in scores],
                    "analysis": analyze_history(scores),
                },
            )

        scores = scanner.score_all_markets()
        rows = signal_table(scores)
        return _ok(
            "COT signals table",
            {
                "signal_table": rows,
                "setup_opportunities": [
                    r for r in rows if r["setup"] in ("EXTREME", "STRONG")
                ],
                "market_stats": {
                    "strong_buy_setups": sum(
                        1 for r in rows if r["signal"] == "BUY" and r["setup"] != "WEAK"
                    ),
                    "strong_sell_setups": sum(
                        1 for r in rows if r["signal"] == "SELL" and r["setup"] != "WEAK"
                    ),
                    "extreme_setups": sum(1 for r in rows if r["setup"] == "EXTREME"),
                },
            },
        )
    except InsufficientDataError as exc:
        return _error("Insufficient data", 404, error=str(exc))
    except Exception as exc:
        logger.error("cot_api_failed", action=action, error=str(exc), exc_info=True)
        return _error("COT analysis failed", 500, error=str(exc))
    finally:
        store.close()
