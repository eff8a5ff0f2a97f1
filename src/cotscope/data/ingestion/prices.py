"""Daily price ingestion from Alpha Vantage.

Currencies are pulled from the ``FX_DAILY`` endpoint; commodities from
``TIME_SERIES_DAILY`` using liquid ETF proxies (GLD, SLV, USO, CPER, UNG)
configured in the market registry. Bars are validated and archived in the
Parquet lake under ``data_type=prices``; the lake resolves re-downloaded
dates by keeping the latest ingestion.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime

import httpx
import pyarrow as pa
import structlog

from cotscope.config.markets import MARKETS, MarketConfig
from cotscope.data.ingestion.base import IngestPipeline
from cotscope.data.store.parquet_lake import ParquetLake

logger = structlog.get_logger()

BASE_URL = "https://www.alphavantage.co/query"
FX_SERIES_KEY = "Time Series FX (Daily)"
EQUITY_SERIES_KEY = "Time Series (Daily)"


class PriceAPIError(Exception):
    """Raised when Alpha Vantage returns an error, a rate-limit note, or bad data."""


@dataclass(frozen=True)
class PriceBar:
    """One daily OHLC(V) bar."""

    symbol: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None


class AlphaVantageClient:
    """Thin Alpha Vantage client for daily FX and equity series.

    Parameters
    ----------
    api_key : str | None
        API key; falls back to ``ALPHA_VANTAGE_API_KEY``.
    client : httpx.Client | None
        Injected HTTP client (tests pass one with a mock transport).
    timeout : float
        Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key or os.environ.get("ALPHA_VANTAGE_API_KEY")
        self._client = client or httpx.Client(timeout=timeout)

    def _request(self, params: dict[str, str]) -> dict:
        if not self.api_key:
            raise PriceAPIError("Alpha Vantage API key not configured")

        response = self._client.get(BASE_URL, params={**params, "apikey": self.api_key})
        if response.status_code != 200:
            raise PriceAPIError(
                f"Alpha Vantage HTTP {response.status_code}: {response.reason_phrase}"
            )
        payload = response.json()
        for key, label in (
            ("Error Message", "error"),
            ("Note", "rate limit"),
            ("Information", "info"),
        ):
            if key in payload:
                raise PriceAPIError(f"Alpha Vantage {label}: {payload[key]}")
        return payload

    @staticmethod
    def _parse_series(series: dict, symbol: str) -> list[PriceBar]:
        bars = []
        for day, values in series.items():
            volume = values.get("5. volume")
            bars.append(
                PriceBar(
                    symbol=symbol,
                    date=date.fromisoformat(day),
                    open=float(values["1. open"]),
                    high=float(values["2. high"]),
                    low=float(values["3. low"]),
                    close=float(values["4. close"]),
                    volume=float(volume) if volume is not None else None,
                )
            )
        bars.sort(key=lambda b: b.date, reverse=True)
        return bars

    def fetch_fx_daily(
        self, from_symbol: str, to_symbol: str, output_size: str = "compact"
    ) -> list[PriceBar]:
        """Daily FX bars, newest first."""
        payload = self._request({
            "function": "FX_DAILY",
            "from_symbol": from_symbol,
            "to_symbol": to_symbol,
            "outputsize": output_size,
        })
        if FX_SERIES_KEY not in payload:
            raise PriceAPIError("Invalid forex response structure from Alpha Vantage")
        return self._parse_series(payload[FX_SERIES_KEY], f"{from_symbol}/{to_symbol}")

    def fetch_equity_daily(
        self, symbol: str, output_size: str = "compact"
    ) -> list[PriceBar]:
        """Daily equity/ETF bars, newest first."""
        payload = self._request({
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "outputsize": output_size,
        })
        if EQUITY_SERIES_KEY not in payload:
            raise PriceAPIError("Invalid time series response structure from Alpha Vantage")
        return self._parse_series(payload[EQUITY_SERIES_KEY], symbol)

    def fetch_for_market(
        self, config: MarketConfig, output_size: str = "compact"
    ) -> list[PriceBar]:
        """Daily bars for a registered market, routed by its ``price_kind``."""
        if config.price_kind == "forex":
            from_symbol, to_symbol = config.price_symbol.split("/")
            return self.fetch_fx_daily(from_symbol, to_symbol, output_size)
        if config.price_kind == "equity":
            return self.fetch_equity_daily(config.price_symbol, output_size)
        raise PriceAPIError(f"Unsupported price kind for {config.symbol}: {config.price_kind}")

    def close(self) -> None:
        self._client.close()


class PriceIngestPipeline(IngestPipeline):
    """Ingest daily price bars for a registered market.

    Parameters
    ----------
    parquet_lake : ParquetLake
        Data lake receiving the bars.
    client : AlphaVantageClient
        Price API client.
    output_size : str
        ``"compact"`` (last 100 bars) or ``"full"``.
    """

    def __init__(
        self,
        parquet_lake: ParquetLake,
        client: AlphaVantageClient,
        output_size: str = "compact",
    ) -> None:
        super().__init__(parquet_lake=parquet_lake)
        self.client = client
        self.output_size = output_size

    def fetch(self, market: str, date: datetime) -> dict:
        config = MARKETS.get(market)
        if config is None:
            raise PriceAPIError(f"No price mapping for market: {market}")
        logger.info("fetching_prices", market=market, symbol=config.price_symbol)
        return {"records": self.client.fetch_for_market(config, self.output_size)}

    def validate(self, raw_data: dict) -> tuple[dict, list[str]]:
        """Drop bars with non-positive prices or an inverted high/low range."""
        warnings: list[str] = []
        bars: list[PriceBar] = raw_data.get("records", [])
        if not bars:
            warnings.append("No price bars returned for this market")
            return {"records": []}, warnings

        valid = []
        for bar in bars:
            if min(bar.open, bar.high, bar.low, bar.close) <= 0:
                warnings.append(f"Bar {bar.date}: non-positive price")
            elif bar.high < bar.low:
                warnings.append(f"Bar {bar.date}: high {bar.high} < low {bar.low}")
            else:
                valid.append(bar)
        return {"records": valid}, warnings

    def persist(self, data: dict, market: str, date: datetime) -> None:
        bars: list[PriceBar] = data.get("records", [])
        if not bars:
            logger.warning("no_prices_to_persist", market=market, date=str(date))
            return

        known = {
            row["date"] for row in self.parquet_lake.read("prices", market)
        }
        table = pa.table({
            "date": pa.array([b.date.isoformat() for b in bars], type=pa.string()),
            "symbol": pa.array([b.symbol for b in bars], type=pa.string()),
            "open": pa.array([b.open for b in bars], type=pa.float64()),
            "high": pa.array([b.high for b in bars], type=pa.float64()),
            "low": pa.array([b.low for b in bars], type=pa.float64()),
            "close": pa.array([b.close for b in bars], type=pa.float64()),
            "volume": pa.array([b.volume for b in bars], type=pa.float64()),
        })
        self.parquet_lake.write(table, data_type="prices", market=market, date=date)

        new = sum(1 for b in bars if b.date.isoformat() not in known)
        self.last_result.new_records = new
        self.last_result.skipped_records = len(bars) - new
        logger.info(
            "prices_persisted",
            market=market,
            bars=len(bars),
            new=new,
            oldest=bars[-1].date.isoformat(),
            latest=bars[0].date.isoformat(),
        )
