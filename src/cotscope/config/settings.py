"""Environment-driven runtime settings shared by the CLI and the API.

Variables:
    COTSCOPE_DATA_DIR   data directory (default ``~/.cotscope``)
    COTSCOPE_MARKETS    comma-separated market symbols (default: all registered)
    ALPHA_VANTAGE_API_KEY   read by the price client itself
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from cotscope.config.markets import MARKETS, get_markets

logger = structlog.get_logger()

DEFAULT_DATA_DIR = "~/.cotscope"
POSITIONS_DB = "positions.db"
LAKE_DIR = "lake"


def resolve_data_dir(data_dir: str | Path | None = None) -> Path:
    """Explicit path, else ``COTSCOPE_DATA_DIR``, else ``~/.cotscope``; tilde expanded."""
    if data_dir is None:
        data_dir = os.environ.get("COTSCOPE_DATA_DIR", DEFAULT_DATA_DIR)
    return Path(data_dir).expanduser()


def configured_markets() -> list[str]:
    """Market symbols selected by ``COTSCOPE_MARKETS``; unknown symbols are skipped."""
    raw = os.environ.get("COTSCOPE_MARKETS", "")
    if not raw.strip():
        return [m.symbol for m in get_markets()]

    symbols = []
    for symbol in (s.strip() for s in raw.split(",")):
        if not symbol:
            continue
        if symbol not in MARKETS:
            logger.warning("unknown_market_symbol_skipping", symbol=symbol)
            continue
        symbols.append(symbol)
    return symbols
