"""SQLite store of weekly legacy COT positions, one row per market per report date.

This is the data store the scoring engine reads through
``fetch_position_history``. Rows are keyed by ``(market, report_date)``;
re-ingesting a report that is already stored is counted as skipped rather
than overwriting it, so the weekly collection job is idempotent.

Schema:
    positions(
        market TEXT NOT NULL,
        report_date TEXT NOT NULL,      -- ISO 8601 date (report Tuesday)
        available_at TEXT NOT NULL,     -- ISO 8601 UTC (Friday release)
        commercial_long INTEGER NOT NULL,
        commercial_short INTEGER NOT NULL,
        noncommercial_long INTEGER NOT NULL,
        noncommercial_short INTEGER NOT NULL,
        open_interest INTEGER,
        PRIMARY KEY (market, report_date)
    )
    INDEX idx_positions_date ON positions (market, report_date DESC)
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import date, datetime
from pathlib import Path

import structlog

from cotscope.config.markets import MARKETS
from cotscope.signals.sentiment.history import PositionHistory, PositionRecord

logger = structlog.get_logger()

UNKNOWN_SYMBOL = "UNKNOWN"


class PositionStore:
    """Weekly position history backed by SQLite.

    Parameters
    ----------
    db_path : str | Path
        Path to the SQLite database file. Created if it doesn't exist.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        # Scanner worker threads share this connection
        self._lock = threading.Lock()
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def _create_tables(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS positions (
                market TEXT NOT NULL,
                report_date TEXT NOT NULL,
                available_at TEXT NOT NULL,
                commercial_long INTEGER NOT NULL,
                commercial_short INTEGER NOT NULL,
                noncommercial_long INTEGER NOT NULL,
                noncommercial_short INTEGER NOT NULL,
                open_interest INTEGER,
                PRIMARY KEY (market, report_date)
            )
        """)
        self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_positions_date
            ON positions (market, report_date DESC)
        """)
        self.conn.commit()

    def write_records(
        self,
        market: str,
        records: list[PositionRecord],
        available_at: dict[date, datetime] | None = None,
    ) -> tuple[int, int]:
        """Insert records that are not stored yet.

        Parameters
        ----------
        market : str
            Market symbol (e.g., "GOLD").
        records : list[PositionRecord]
            Records to store, in any order.
        available_at : dict[date, datetime] | None
            Release timestamp per report date. Defaults to the report date.

        Returns
        -------
        tuple[int, int]
            ``(new_records, skipped_records)``.

        Raises
        ------
        sqlite3.Error
            If any insert fails; the whole batch is rolled back.
        """
        available_at = available_at or {}
        new = 0
        # One transaction per batch: commit on success, rollback on error
        with self._lock, self.conn:
            for rec in records:
                released = available_at.get(rec.report_date)
                cursor = self.conn.execute(
                    """
                    INSERT OR IGNORE INTO positions
                    (market, report_date, available_at, commercial_long,
                     commercial_short, noncommercial_long, noncommercial_short,
                     open_interest)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        market,
                        rec.report_date.isoformat(),
                        released.isoformat() if released else rec.report_date.isoformat(),
                        rec.commercial_long,
                        rec.commercial_short,
                        rec.noncommercial_long,
                        rec.noncommercial_short,
                        rec.open_interest,
                    ),
                )
                new += cursor.rowcount
        skipped = len(records) - new
        logger.info(
            "positions_written", market=market, new=new, skipped=skipped
        )
        return new, skipped

    def fetch_position_history(
        self, market: str, min_records: int
    ) -> PositionHistory:
        """Return the ``min_records`` most recent reports for a market, newest first.

        Fewer records are returned when fewer are stored; the caller decides
        whether that is enough.
        """
        with self._lock:
            rows = self.conn.execute(
                """
                SELECT report_date, commercial_long, commercial_short,
                       noncommercial_long, noncommercial_short, open_interest
                FROM positions
                WHERE market = ?
                ORDER BY report_date DESC
                LIMIT ?
                """,
                (market, min_records),
            ).fetchall()
        return PositionHistory(
            PositionRecord(
                report_date=date.fromisoformat(row[0]),
                commercial_long=row[1],
                commercial_short=row[2],
                noncommercial_long=row[3],
                noncommercial_short=row[4],
                open_interest=row[5],
            )
            for row in rows
        )

    def fetch_market_symbol(self, market: str) -> str:
        """Display label for a market; ``"UNKNOWN"`` if it is not registered."""
        config = MARKETS.get(market)
        return config.symbol if config is not None else UNKNOWN_SYMBOL

    def latest_report_date(self, market: str) -> date | None:
        """Most recent stored report date for a market, or None."""
        with self._lock:
            row = self.conn.execute(
                "SELECT MAX(report_date) FROM positions WHERE market = ?",
                (market,),
            ).fetchone()
        return date.fromisoformat(row[0]) if row and row[0] else None

    def get_stats(self) -> dict:
        """Record count, date range and number of markets with data."""
        with self._lock:
            total, latest, oldest, markets = self.conn.execute(
                """
                SELECT COUNT(*), MAX(report_date), MIN(report_date),
                       COUNT(DISTINCT market)
                FROM positions
                """
            ).fetchone()
        return {
            "total_records": total,
            "latest_date": latest,
            "oldest_date": oldest,
            "markets_with_data": markets,
        }

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
        logger.debug("position_store_closed", db_path=str(self.db_path))
