"""CFTC Commitments of Traders ingestion (legacy futures-only report).

Downloads yearly legacy COT files via the ``cot_reports`` library, keeps the
rows for one CFTC contract code, validates the commercial / non-commercial
positions, archives the raw rows in the Parquet lake and stores new weekly
records in the ``PositionStore``.

TIMING:
    report_date  = Tuesday (the date the positions represent)
    available_at = the following Friday at 15:30 ET (20:30 UTC), the CFTC
                   release time

Reports already in the store are skipped, so the job can be re-run weekly
over the same years without duplicating history.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import cot_reports as cot
import pyarrow as pa
import structlog

from cotscope.data.ingestion.base import IngestPipeline
from cotscope.data.store.parquet_lake import ParquetLake
from cotscope.data.store.position_store import PositionStore
from cotscope.signals.sentiment.history import PositionRecord

logger = structlog.get_logger()

REPORT_TYPE = "legacy_fut"

# Column aliases: cot_reports has shipped both spellings over time
CODE_COLUMNS = ["CFTC Contract Market Code", "CFTC_Contract_Market_Code"]
DATE_COLUMNS = [
    "As of Date in Form YYYY-MM-DD",
    "Report_Date_as_YYYY-MM-DD",
    "As_of_Date_In_Form_YYMMDD",
]
POSITION_COLUMNS = {
    "commercial_long": ["Commercial Positions-Long (All)", "Comm_Positions_Long_All"],
    "commercial_short": ["Commercial Positions-Short (All)", "Comm_Positions_Short_All"],
    "noncommercial_long": ["Noncommercial Positions-Long (All)", "NonComm_Positions_Long_All"],
    "noncommercial_short": ["Noncommercial Positions-Short (All)", "NonComm_Positions_Short_All"],
    "open_interest": ["Open Interest (All)", "Open_Interest_All"],
}


def _next_friday(report_date: date) -> datetime:
    """Release timestamp (UTC) of a COT report: the next Friday at 20:30 UTC.

    A report dated on a Friday is released the following Friday.
    """
    days_until_friday = (4 - report_date.weekday()) % 7 or 7
    friday = report_date + timedelta(days=days_until_friday)
    # 15:30 ET = 20:30 UTC (EST, UTC-5)
    return datetime(friday.year, friday.month, friday.day, 20, 30, tzinfo=timezone.utc)


def _first_present(row, columns: list[str]):
    for col in columns:
        value = row.get(col)
        if value is not None:
            return value
    return None


def _parse_report_date(raw) -> date | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        for fmt in ("%Y-%m-%d", "%y%m%d"):
            try:
                return datetime.strptime(raw.strip(), fmt).date()
            except ValueError:
                continue
        return None
    # pandas Timestamp / datetime / date; NaN cells have no year
    if not hasattr(raw, "year") or raw != raw:
        return None
    return date(raw.year, raw.month, raw.day)


def _to_int(value) -> int:
    if value is None:
        return 0
    try:
        return int(float(str(value).replace(",", "")))
    except ValueError:
        return 0


class COTIngestPipeline(IngestPipeline):
    """Ingest CFTC legacy futures-only COT reports for one contract.

    Parameters
    ----------
    parquet_lake : ParquetLake
        Data lake for raw COT rows.
    position_store : PositionStore
        Store receiving the weekly position records.
    cftc_code : str
        CFTC contract market code (e.g., "088606" for gold).
    years_back : int
        Additional prior years downloaded besides the reference year, so a
        52-week lookback plus 13 weeks of rate of change is covered.
    """

    def __init__(
        self,
        parquet_lake: ParquetLake,
        position_store: PositionStore,
        cftc_code: str,
        years_back: int = 1,
    ) -> None:
        super().__init__(parquet_lake=parquet_lake)
        self.position_store = position_store
        self.cftc_code = cftc_code
        self.years_back = years_back

    def fetch(self, market: str, date: datetime) -> dict:
        """Download the reference year (and ``years_back`` before it) and filter by code."""
        log = logger.bind(
            pipeline="COTIngestPipeline", market=market, cftc_code=self.cftc_code
        )

        records = []
        for year in range(date.year - self.years_back, date.year + 1):
            log.info("fetching_cot", year=year)
            df = cot.cot_year(year=year, cot_report_type=REPORT_TYPE)

            code_col = next((c for c in CODE_COLUMNS if c in df.columns), None)
            if code_col is None:
                log.warning("cot_code_column_missing", year=year)
                continue
            market_df = df[df[code_col].astype(str).str.strip() == str(self.cftc_code)]

            for _, row in market_df.iterrows():
                report_date = _parse_report_date(_first_present(row, DATE_COLUMNS))
                if report_date is None:
                    continue
                rec = {"report_date": report_date}
                for key, columns in POSITION_COLUMNS.items():
                    rec[key] = _to_int(_first_present(row, columns))
                records.append(rec)

        log.info("fetched_cot", record_count=len(records))
        return {"records": records}

    def validate(self, raw_data: dict) -> tuple[dict, list[str]]:
        """Drop records with negative positions and duplicate report dates.

        Returns
        -------
        tuple[dict, list[str]]
            (cleaned_data, warnings)
        """
        warnings: list[str] = []
        records = raw_data.get("records", [])

        if not records:
            warnings.append("No COT records returned for this market")
            return {"records": []}, warnings

        valid_records = []
        seen: set[date] = set()
        for rec in records:
            negative = [
                key for key in POSITION_COLUMNS if rec.get(key, 0) < 0
            ]
            if negative:
                warnings.append(
                    f"Record {rec['report_date']}: negative {', '.join(negative)}"
                )
                continue
            if rec["report_date"] in seen:
                warnings.append(f"Record {rec['report_date']}: duplicate report date")
                continue
            seen.add(rec["report_date"])
            valid_records.append(rec)

        if len(valid_records) < len(records):
            warnings.append(
                f"Dropped {len(records) - len(valid_records)} of "
                f"{len(records)} records"
            )

        return {"records": valid_records}, warnings

    def persist(self, data: dict, market: str, date: datetime) -> None:
        """Archive raw rows to the lake and store new weekly records."""
        records = data.get("records", [])
        if not records:
            logger.warning("no_cot_to_persist", market=market, date=str(date))
            return

        table = pa.table({
            "report_date": pa.array(
                [r["report_date"].isoformat() for r in records], type=pa.string()
            ),
            "available_at": pa.array(
                [_next_friday(r["report_date"]).isoformat() for r in records],
                type=pa.string(),
            ),
            **{
                key: pa.array([r[key] for r in records], type=pa.int64())
                for key in POSITION_COLUMNS
            },
        })
        self.parquet_lake.write(table, data_type="cot", market=market, date=date)

        position_records = [
            PositionRecord(
                report_date=r["report_date"],
                commercial_long=r["commercial_long"],
                commercial_short=r["commercial_short"],
                noncommercial_long=r["noncommercial_long"],
                noncommercial_short=r["noncommercial_short"],
                open_interest=r["open_interest"],
            )
            for r in records
        ]
        new, skipped = self.position_store.write_records(
            market,
            position_records,
            available_at={r["report_date"]: _next_friday(r["report_date"]) for r in records},
        )
        self.last_result.new_records = new
        self.last_result.skipped_records = skipped

        logger.info(
            "cot_persisted",
            market=market,
            records=len(records),
            new=new,
            skipped=skipped,
        )
