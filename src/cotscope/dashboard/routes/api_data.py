"""Stored data endpoints: position store stats, raw positions, price bars."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

from cotscope.dashboard.data_access import DashboardData

router = APIRouter()


@router.get("/stats")
async def stats(request: Request):
    """Return position store statistics."""
    data = DashboardData(request.app.state.data_dir)
    return JSONResponse(content=data.get_store_stats())


@router.get("/positions")
async def positions(
    request: Request,
    market: str = Query(...),
    limit: int = Query(52, ge=1, le=1000),
):
    """Return the most recent weekly positions for a market, newest first."""
    data = DashboardData(request.app.state.data_dir)
    return JSONResponse(content=data.get_positions(market, limit=limit))


@router.get("/prices")
async def prices(
    request: Request,
    market: str = Query(...),
    limit: int = Query(100, ge=1, le=5000),
):
    """Return the most recent daily price bars for a market, newest first."""
    data = DashboardData(request.app.state.data_dir)
    return JSONResponse(content=data.get_prices(market, limit=limit))
