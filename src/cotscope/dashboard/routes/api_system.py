"""System endpoints: component health, runtime config, disk usage."""

from __future__ import annotations

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from cotscope.dashboard.data_access import DashboardData

router = APIRouter()


@router.get("/components")
async def components(request: Request):
    """Return component health status."""
    data = DashboardData(request.app.state.data_dir)
    return JSONResponse(content=data.get_component_health())


@router.get("/config")
async def config(request: Request):
    """Return runtime configuration."""
    return JSONResponse(content={
        "data_dir": str(request.app.state.data_dir),
        "markets": request.app.state.markets,
    })


@router.get("/disk-usage")
async def disk_usage(request: Request):
    """Return disk usage for the position store and data lake."""
    data = DashboardData(request.app.state.data_dir)
    return JSONResponse(content=data.get_disk_usage())
