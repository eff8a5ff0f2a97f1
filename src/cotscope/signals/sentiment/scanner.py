"""Cross-market scanning: score every tracked market and pick out extremes.

``MarketScanner`` is the service the CLI and HTTP API talk to. It pulls each
market's history from a ``PositionSource`` (normally ``PositionStore``),
runs the pure scoring engine, and aggregates the latest score per market.

A market that fails to score (short history, bad data, storage error) is
logged, recorded in ``failures`` and left out of the aggregate -- it never
aborts the rest of the scan.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from cotscope.signals.sentiment.cot_scoring import (
    DEFAULT_LOOKBACK_WEEKS,
    ROC_PADDING_WEEKS,
    Bias,
    COTScore,
    score_history,
)
from cotscope.signals.sentiment.history import PositionHistory

logger = structlog.get_logger()

# Aggregation thresholds. Independent of the 90/10 extreme-level boundary.
EXTREME_BUY_COMMERCIAL = 90.0
EXTREME_BUY_OVERALL = 85.0
EXTREME_SELL_COMMERCIAL = 10.0
EXTREME_SELL_OVERALL = 15.0
HIGH_CONFIDENCE = 80

# Signal table thresholds
TABLE_BUY_COMMERCIAL = 80.0
TABLE_SELL_COMMERCIAL = 20.0
STRONG_SETUP_CONFIDENCE = 70


class PositionSource(Protocol):
    """Read interface the scanner needs from the data store."""

    def fetch_position_history(
        self, market: str, min_records: int
    ) -> PositionHistory: ...

    def fetch_market_symbol(self, market: str) -> str: ...


@dataclass
class ExtremeSignals:
    """Markets currently at actionable extremes."""

    extreme_buys: list[COTScore] = field(default_factory=list)
    extreme_sells: list[COTScore] = field(default_factory=list)
    high_confidence_setups: list[COTScore] = field(default_factory=list)

    def summary(self) -> dict:
        return {
            "extreme_buy_count": len(self.extreme_buys),
            "extreme_sell_count": len(self.extreme_sells),
            "high_confidence_count": len(self.high_confidence_setups),
        }


class MarketScanner:
    """Score one or all markets from a position source.

    Parameters
    ----------
    source : PositionSource
        Store that supplies newest-first histories and market labels.
    markets : list[str]
        Market identifiers included in bulk scans.
    lookback_weeks : int
        Lookback used by ``score_all_markets``.
    max_workers : int | None
        If > 1, markets are scored on a thread pool; results are aggregated
        only once every market has finished.
    """

    def __init__(
        self,
        source: PositionSource,
        markets: list[str],
        lookback_weeks: int = DEFAULT_LOOKBACK_WEEKS,
        max_workers: int | None = None,
    ) -> None:
        self.source = source
        self.markets = list(markets)
        self.lookback_weeks = lookback_weeks
        self.max_workers = max_workers
        self.failures: dict[str, str] = {}

    def score_market(
        self, market: str, lookback_weeks: int | None = None
    ) -> list[COTScore]:
        """Score a single market's history, oldest first.

        Raises
        ------
        InsufficientDataError
            If the stored history is too short.
        """
        lookback = lookback_weeks if lookback_weeks is not None else self.lookback_weeks
        history = self.source.fetch_position_history(
            market, lookback + ROC_PADDING_WEEKS
        )
        symbol = self.source.fetch_market_symbol(market)
        return score_history(history, lookback, market=market, symbol=symbol)

    def _latest_score(self, market: str) -> COTScore | None:
        try:
            scores = self.score_market(market, self.lookback_weeks)
        except Exception as exc:
            logger.warning(
                "market_scoring_failed",
                market=market,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            self.failures[market] = str(exc)
            return None
        if not scores:
            return None
        return scores[-1]

    def score_all_markets(self) -> list[COTScore]:
        """Latest score of every market, sorted by overall score descending."""
        self.failures = {}
        log = logger.bind(markets=len(self.markets), lookback=self.lookback_weeks)
        log.info("market_scan_started")

        if self.max_workers is not None and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                latest = list(pool.map(self._latest_score, self.markets))
        else:
            latest = [self._latest_score(m) for m in self.markets]

        scores = [s for s in latest if s is not None]
        scores.sort(key=lambda s: s.overall_score, reverse=True)
        log.info(
            "market_scan_complete",
            scored=len(scores),
            failed=len(self.failures),
        )
        return scores

    def find_extreme_signals(
        self, scores: list[COTScore] | None = None
    ) -> ExtremeSignals:
        """Partition current scores into extreme buys, sells and setups.

        Parameters
        ----------
        scores : list[COTScore] | None
            Output of ``score_all_markets``; computed when omitted.
        """
        if scores is None:
            scores = self.score_all_markets()
        return ExtremeSignals(
            extreme_buys=[
                s for s in scores
                if s.commercial_index >= EXTREME_BUY_COMMERCIAL
                or s.overall_score >= EXTREME_BUY_OVERALL
            ],
            extreme_sells=[
                s for s in scores
                if s.commercial_index <= EXTREME_SELL_COMMERCIAL
                or s.overall_score <= EXTREME_SELL_OVERALL
            ],
            high_confidence_setups=[
                s for s in scores
                if s.confidence >= HIGH_CONFIDENCE and s.extreme_level
            ],
        )


# ---------------------------------------------------------------------------
# Report helpers
# ---------------------------------------------------------------------------


def summarize(scores: list[COTScore]) -> dict:
    """Bias and extremeness counts across a set of current scores."""
    return {
        "total_markets": len(scores),
        "bullish_count": sum(1 for s in scores if s.bias is Bias.BULLISH),
        "bearish_count": sum(1 for s in scores if s.bias is Bias.BEARISH),
        "neutral_count": sum(1 for s in scores if s.bias is Bias.NEUTRAL),
        "extreme_count": sum(1 for s in scores if s.extreme_level),
        "high_confidence_count": sum(
            1 for s in scores if s.confidence >= HIGH_CONFIDENCE
        ),
    }


def percentile_of(value: float, dataset: list[float]) -> int:
    """Percent of ``dataset`` strictly below ``value``, rounded to an int."""
    if not dataset:
        return 0
    below = sum(1 for v in dataset if v < value)
    return round(below / len(dataset) * 100)


def analyze_history(scores: list[COTScore]) -> dict:
    """Historical context for one market's chronological score sequence."""
    if not scores:
        return {
            "total_weeks": 0,
            "extreme_readings": 0,
            "bullish_extremes": 0,
            "bearish_extremes": 0,
            "average_score": 0,
            "current_percentile": 0,
        }
    extremes = [s for s in scores if s.extreme_level]
    overall = [s.overall_score for s in scores]
    return {
        "total_weeks": len(scores),
        "extreme_readings": len(extremes),
        "bullish_extremes": sum(1 for s in extremes if s.bias is Bias.BULLISH),
        "bearish_extremes": sum(1 for s in extremes if s.bias is Bias.BEARISH),
        "average_score": round(sum(overall) / len(overall)),
        "current_percentile": percentile_of(scores[-1].overall_score, overall),
    }


def table_signal(score: COTScore) -> str:
    """BUY / SELL / NEUTRAL from the commercial index alone."""
    if score.commercial_index >= TABLE_BUY_COMMERCIAL:
        return "BUY"
    if score.commercial_index <= TABLE_SELL_COMMERCIAL:
        return "SELL"
    return "NEUTRAL"


def setup_strength(score: COTScore) -> str:
    if score.extreme_level:
        return "EXTREME"
    if score.confidence >= STRONG_SETUP_CONFIDENCE:
        return "STRONG"
    return "WEAK"


def signal_table(scores: list[COTScore]) -> list[dict]:
    """Compact per-market rows for the signals view."""
    return [
        {
            "market": s.symbol,
            "commercial_index": round(s.commercial_index),
            "large_trader_index": round(s.large_trader_index),
            "signal": table_signal(s),
            "confidence": s.confidence,
            "setup": setup_strength(s),
        }
        for s in scores
    ]
