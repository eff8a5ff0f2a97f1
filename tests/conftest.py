"""Shared test fixtures for the cotscope test suite."""

from datetime import date, timedelta
from pathlib import Path

import pytest

from cotscope.signals.sentiment.history import PositionHistory, PositionRecord

# A Tuesday; weekly histories end here
LATEST_REPORT = date(2026, 2, 17)


def _make_history(
    commercial_nets: list[int],
    noncommercial_nets: list[int] | None = None,
    latest: date = LATEST_REPORT,
) -> PositionHistory:
    """Build a weekly history from chronological (oldest first) net series.

    Longs carry the net on top of a fixed short leg so positions stay
    non-negative.
    """
    if noncommercial_nets is None:
        noncommercial_nets = [0] * len(commercial_nets)
    assert len(noncommercial_nets) == len(commercial_nets)

    n = len(commercial_nets)
    base = 100_000
    records = []
    for i, (c_net, nc_net) in enumerate(zip(commercial_nets, noncommercial_nets)):
        records.append(
            PositionRecord(
                report_date=latest - timedelta(weeks=n - 1 - i),
                commercial_long=base + c_net,
                commercial_short=base,
                noncommercial_long=base + nc_net,
                noncommercial_short=base,
                open_interest=4 * base,
            )
        )
    return PositionHistory(records)


@pytest.fixture
def tmp_lake_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for Parquet lake tests."""
    lake_dir = tmp_path / "lake"
    lake_dir.mkdir()
    return lake_dir


@pytest.fixture
def tmp_positions_db(tmp_path: Path) -> Path:
    """Provide a temporary SQLite database path for position store tests."""
    return tmp_path / "positions.db"


@pytest.fixture
def make_history():
    """Factory fixture: ``make_history(commercial_nets, noncommercial_nets=None)``."""
    return _make_history


@pytest.fixture
def populated_data_dir(tmp_path: Path) -> Path:
    """Data directory whose position store holds three markets.

    GOLD: 30 weeks of rising commercial net (extreme buy).
    CRUDE: 30 weeks of falling commercial net (extreme sell).
    SILVER: 5 weeks only (too short to score).
    """
    from cotscope.data.store.position_store import PositionStore

    store = PositionStore(tmp_path / "positions.db")
    try:
        store.write_records("GOLD", list(_make_history([100 * i for i in range(30)])))
        store.write_records("CRUDE", list(_make_history([-100 * i for i in range(30)])))
        store.write_records("SILVER", list(_make_history(list(range(5)))))
    finally:
        store.close()
    return tmp_path
