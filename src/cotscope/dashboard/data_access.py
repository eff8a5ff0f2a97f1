"""Centralized data access for cotscope API routes.

Provides safe helpers that return None / empty results when a data source
has not been created yet, so every endpoint degrades gracefully on a fresh
data directory.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from cotscope.config.settings import LAKE_DIR, POSITIONS_DB

logger = structlog.get_logger(__name__)


class DashboardData:
    """Centralized data access for API routes."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir

    def get_position_store(self, create: bool = False):
        """Open PositionStore, return instance or None if the DB is missing.

        With ``create=True`` an empty store is created on demand.
        """
        db_path = self.data_dir / POSITIONS_DB
        if not db_path.exists() and not create:
            return None
        try:
            from cotscope.data.store.position_store import PositionStore

            self.data_dir.mkdir(parents=True, exist_ok=True)
            return PositionStore(db_path)
        except Exception as exc:
            logger.warning("position_store_unavailable", error=str(exc))
            return None

    def get_parquet_lake(self):
        """Open ParquetLake, return instance or None if no lake exists."""
        lake_path = self.data_dir / LAKE_DIR
        if not lake_path.exists():
            return None
        try:
            from cotscope.data.store.parquet_lake import ParquetLake

            return ParquetLake(lake_path)
        except Exception as exc:
            logger.warning("parquet_lake_unavailable", error=str(exc))
            return None

    # --- Convenience queries ---

    def get_store_stats(self) -> dict:
        """Position store stats: total records, date range, markets with data."""
        store = self.get_position_store()
        if store is None:
            return {
                "total_records": 0,
                "latest_date": None,
                "oldest_date": None,
                "markets_with_data": 0,
            }
        try:
            return store.get_stats()
        finally:
            store.close()

    def get_positions(self, market: str, limit: int = 52) -> list[dict]:
        """Most recent weekly positions for a market, newest first."""
        store = self.get_position_store()
        if store is None:
            return []
        try:
            history = store.fetch_position_history(market, limit)
            return [
                {
                    "report_date": r.report_date.isoformat(),
                    "commercial_long": r.commercial_long,
                    "commercial_short": r.commercial_short,
                    "commercial_net": r.commercial_net,
                    "noncommercial_long": r.noncommercial_long,
                    "noncommercial_short": r.noncommercial_short,
                    "noncommercial_net": r.noncommercial_net,
                    "open_interest": r.open_interest,
                }
                for r in history
            ]
        finally:
            store.close()

    def get_prices(self, market: str, limit: int = 100) -> list[dict]:
        """Most recent daily price bars for a market, newest first."""
        lake = self.get_parquet_lake()
        if lake is None:
            return []
        return lake.read("prices", market)[:limit]

    def get_component_health(self) -> list[dict]:
        """Health status for the position store and the data lake."""
        components = []

        store = self.get_position_store()
        if store is not None:
            try:
                count = store.get_stats()["total_records"]
                components.append({"name": "Position Store", "status": "ok", "details": f"{count} records"})
            except Exception:
                components.append({"name": "Position Store", "status": "error", "details": "Query failed"})
            finally:
                store.close()
        else:
            components.append({"name": "Position Store", "status": "unavailable", "details": "DB not found"})

        lake_path = self.data_dir / LAKE_DIR
        if lake_path.exists():
            n_files = sum(1 for _ in lake_path.rglob("*.parquet"))
            components.append({"name": "Data Lake", "status": "ok", "details": f"{n_files} files"})
        else:
            components.append({"name": "Data Lake", "status": "unavailable", "details": "Lake not found"})

        return components

    def get_disk_usage(self) -> list[dict]:
        """Size of the position database and the data lake."""
        usage = []
        db_path = self.data_dir / POSITIONS_DB
        lake_path = self.data_dir / LAKE_DIR

        for label, path, size in (
            ("Position Store", db_path, db_path.stat().st_size if db_path.exists() else None),
            (
                "Data Lake",
                lake_path,
                sum(f.stat().st_size for f in lake_path.rglob("*") if f.is_file())
                if lake_path.exists() else None,
            ),
        ):
            usage.append({"name": label, "path": path.name, "size": _format_size(size)})
        return usage


def _format_size(size_bytes: int | None) -> str:
    if size_bytes is None:
        return "Not created"
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"
