"""Append-only Parquet data lake with hive partitioning.

Raw inputs (legacy COT rows and daily price bars) are archived as Parquet
files organized in hive-partitioned directories. Each ingestion run creates
uniquely named files so old batches are never overwritten; re-ingested rows
are resolved at read time by keeping the most recently ingested copy.

Partitioning scheme:
    base_path / data_type=X / market=Y / year=Z / month=W / batch_YYYYMMDD_uuid.parquet

Market symbols are stored in path-safe form (``EUR/USD`` -> ``EUR_USD``).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import pyarrow as pa
import pyarrow.dataset as ds
import structlog

from cotscope.config.markets import path_safe

logger = structlog.get_logger()

PARTITION_COLUMNS = ["data_type", "market", "year", "month"]
INGESTED_AT_COLUMN = "ingested_at"


class ParquetLake:
    """Append-only Parquet data lake with hive partitioning.

    Parameters
    ----------
    base_path : str | Path
        Root directory for the data lake. Created if missing.
    """

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def write(
        self,
        table: pa.Table,
        data_type: str,
        market: str,
        date: datetime,
    ) -> Path:
        """Write a batch of records to the lake.

        Parameters
        ----------
        table : pa.Table
            Rows to archive. Must NOT already contain partition columns.
        data_type : str
            Category of data (``"cot"`` or ``"prices"``).
        market : str
            Market symbol (e.g., ``"EUR/USD"``).
        date : datetime
            Reference date used for the year/month partition.

        Returns
        -------
        Path
            The partition directory the batch was written under.
        """
        market_key = path_safe(market)
        log = logger.bind(data_type=data_type, market=market, date=str(date))
        n_rows = len(table)
        stamp = datetime.now(timezone.utc).isoformat()

        table = table.append_column(
            INGESTED_AT_COLUMN, pa.array([stamp] * n_rows, type=pa.string())
        )
        table = table.append_column("data_type", pa.array([data_type] * n_rows))
        table = table.append_column("market", pa.array([market_key] * n_rows))
        table = table.append_column("year", pa.array([str(date.year)] * n_rows))
        table = table.append_column(
            "month", pa.array([f"{date.month:02d}"] * n_rows)
        )

        # {i} is required by pyarrow for file indexing within the batch
        unique_id = uuid.uuid4().hex[:8]
        basename = f"batch_{date.strftime('%Y%m%d')}_{unique_id}_{{i}}.parquet"

        ds.write_dataset(
            table,
            base_dir=str(self.base_path),
            format="parquet",
            partitioning=PARTITION_COLUMNS,
            partitioning_flavor="hive",
            existing_data_behavior="overwrite_or_ignore",
            basename_template=basename,
        )

        log.info("parquet_lake_write", rows=n_rows, basename=basename)
        return self.base_path / f"data_type={data_type}" / f"market={market_key}"

    def read(
        self,
        data_type: str,
        market: str,
        date_column: str = "date",
        start: str | None = None,
        end: str | None = None,
    ) -> list[dict]:
        """Read one market's rows, latest ingestion winning per date.

        Parameters
        ----------
        data_type : str
            Category of data to read.
        market : str
            Market symbol.
        date_column : str
            ISO date column used for range filtering and de-duplication.
        start, end : str, optional
            Inclusive ISO date bounds on ``date_column``.

        Returns
        -------
        list[dict]
            Rows sorted by ``date_column`` descending (newest first), with
            partition and bookkeeping columns removed.
        """
        market_dir = (
            self.base_path / f"data_type={data_type}" / f"market={path_safe(market)}"
        )
        if not market_dir.exists():
            return []

        dataset = ds.dataset(str(market_dir), format="parquet")
        filter_expr = None
        if start is not None:
            filter_expr = ds.field(date_column) >= start
        if end is not None:
            end_expr = ds.field(date_column) <= end
            filter_expr = end_expr if filter_expr is None else filter_expr & end_expr

        table = dataset.to_table(filter=filter_expr)
        drop = [c for c in PARTITION_COLUMNS if c in table.column_names]
        table = table.drop(drop)

        latest: dict[str, dict] = {}
        for row in table.to_pylist():
            key = row[date_column]
            current = latest.get(key)
            if current is None or row[INGESTED_AT_COLUMN] > current[INGESTED_AT_COLUMN]:
                latest[key] = row

        rows = sorted(latest.values(), key=lambda r: r[date_column], reverse=True)
        for row in rows:
            row.pop(INGESTED_AT_COLUMN, None)

        logger.info(
            "parquet_lake_read",
            data_type=data_type,
            market=market,
            rows=len(rows),
        )
        return rows
