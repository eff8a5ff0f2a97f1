"""FastAPI application factory for the cotscope JSON API.

Serves COT scores (dashboard, extremes, per-market analysis, signal table),
raw stored positions and prices, and health/system information. The data
directory is resolved once at startup and kept on ``app.state``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from cotscope.config.settings import configured_markets, resolve_data_dir
from cotscope.dashboard.routes import api, api_cot, api_data, api_system

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    logger.info(
        "api_started",
        data_dir=str(app.state.data_dir),
        markets=len(app.state.markets),
    )
    yield
    logger.info("api_stopped")


def create_app(
    data_dir: str | None = None, markets: list[str] | None = None
) -> FastAPI:
    """Create and configure the cotscope FastAPI application.

    Parameters
    ----------
    data_dir : str | None
        Directory holding ``positions.db`` and the Parquet lake. Defaults to
        ``COTSCOPE_DATA_DIR`` or ``~/.cotscope``. Tilde is expanded.
    markets : list[str] | None
        Markets included in cross-market views. Defaults to
        ``COTSCOPE_MARKETS`` or every registered market.

    Returns
    -------
    FastAPI
        Configured application instance.
    """
    app = FastAPI(title="cotscope API", lifespan=_lifespan)

    app.state.data_dir = resolve_data_dir(data_dir)
    app.state.markets = markets if markets is not None else configured_markets()

    app.include_router(api.router, prefix="/api")
    app.include_router(api_cot.router, prefix="/api")
    app.include_router(api_data.router, prefix="/api/data")
    app.include_router(api_system.router, prefix="/api/system")

    return app
