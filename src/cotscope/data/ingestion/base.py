"""Abstract base class for all data ingestion pipelines.

Every data source (COT reports, daily prices) implements this interface:
    fetch(market, date) -> raw data dict
    validate(raw_data) -> (cleaned_data, warnings)
    persist(data, market, date) -> None

The concrete ``run()`` method orchestrates the full pipeline with structured
logging and error handling, and leaves a summary in ``last_result``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from cotscope.data.store.parquet_lake import ParquetLake

logger = structlog.get_logger()


@dataclass
class CollectionResult:
    """Outcome of one pipeline run for one market."""

    success: bool = False
    message: str = ""
    new_records: int = 0
    skipped_records: int = 0
    errors: list[str] = field(default_factory=list)


class IngestPipeline(ABC):
    """Abstract base for all data ingestion pipelines.

    Parameters
    ----------
    parquet_lake : ParquetLake
        Data lake for raw data archiving.
    """

    def __init__(self, parquet_lake: ParquetLake) -> None:
        self.parquet_lake = parquet_lake
        self.last_result = CollectionResult()

    @abstractmethod
    def fetch(self, market: str, date: datetime) -> dict:
        """Fetch raw data from the external source.

        Returns
        -------
        dict
            Raw payload with a ``"records"`` list.
        """
        ...

    @abstractmethod
    def validate(self, raw_data: dict) -> tuple[dict, list[str]]:
        """Validate and clean raw data.

        Returns
        -------
        tuple[dict, list[str]]
            A tuple of (cleaned_data, list_of_warning_messages).
        """
        ...

    @abstractmethod
    def persist(self, data: dict, market: str, date: datetime) -> None:
        """Write validated data to storage.

        Implementations update ``last_result.new_records`` and
        ``last_result.skipped_records``.
        """
        ...

    def run(self, market: str, date: datetime) -> bool:
        """Execute the full pipeline: fetch -> validate -> persist.

        Parameters
        ----------
        market : str
            Market symbol.
        date : datetime
            Reference date (timezone-aware UTC).

        Returns
        -------
        bool
            True if the pipeline completed successfully, False otherwise.
        """
        log = logger.bind(
            pipeline=self.__class__.__name__,
            market=market,
            date=str(date),
        )
        self.last_result = CollectionResult()
        try:
            log.info("ingestion_started")
            raw = self.fetch(market, date)
            cleaned, warnings = self.validate(raw)
            for w in warnings:
                log.warning("validation_warning", detail=w)
            self.last_result.errors.extend(warnings)
            self.persist(cleaned, market, date)
            record_count = len(cleaned.get("records", []))
            self.last_result.success = True
            self.last_result.message = (
                f"Processed {record_count} records: "
                f"{self.last_result.new_records} new, "
                f"{self.last_result.skipped_records} skipped, "
                f"{len(warnings)} warnings"
            )
            log.info(
                "ingestion_complete",
                record_count=record_count,
                new=self.last_result.new_records,
                skipped=self.last_result.skipped_records,
            )
            return True
        except Exception as e:
            log.error("ingestion_failed", error=str(e), exc_info=True)
            self.last_result.success = False
            self.last_result.message = f"Ingestion failed: {e}"
            self.last_result.errors.append(str(e))
            return False
