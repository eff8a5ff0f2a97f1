"""COT positioning scores: rolling-window normalized commercial and large-trader indices.

Transforms a market's legacy COT history (commercial vs. non-commercial
long/short positions) into a weekly score sequence. Each week is scored
against the trailing lookback window that ends at that week:

    commercial_index    = position of commercial net within window range, 0-100
    large_trader_index  = 100 - same for non-commercial net (contrarian read)

The two indices are classified into seven signal zones, blended 70/30 into
an overall score with a +/-5 momentum adjustment from the 4- and 13-week
change in commercial net, and given a confidence in [50, 95].

Everything in this module is a pure function of its arguments.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum

import numpy as np

from cotscope.signals.sentiment.history import (
    PositionHistory,
    extract_window,
    rate_of_change,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_LOOKBACK_WEEKS = 52

# Minimum window size for a meaningful normalization
MIN_WINDOW_RECORDS = 10
# History must hold at least min(MIN_WINDOW_RECORDS, lookback + HISTORY_MARGIN)
HISTORY_MARGIN = 5
# Extra records requested from storage for the 13-week rate of change
ROC_PADDING_WEEKS = 13

FLAT_WINDOW_INDEX = 50.0

COMMERCIAL_WEIGHT = 0.7
LARGE_TRADER_WEIGHT = 0.3
MOMENTUM_ADJUSTMENT = 5.0

BULLISH_BIAS_THRESHOLD = 70.0
BEARISH_BIAS_THRESHOLD = 30.0

BASE_CONFIDENCE = 50
COMMERCIAL_EXTREME_BONUS = 20
LARGE_TRADER_EXTREME_BONUS = 10
AGREEMENT_BONUS = 15
COMMERCIAL_TIGHT_EXTREME_BONUS = 10
MAX_CONFIDENCE = 95

EXTREME_HIGH = 80.0
EXTREME_LOW = 20.0
TIGHT_EXTREME_HIGH = 90.0
TIGHT_EXTREME_LOW = 10.0
AGREEMENT_SPREAD = 30.0


class Signal(str, Enum):
    """Signal zone for a single 0-100 index."""

    EXTREME_BUY = "EXTREME_BUY"
    BUY_SETUP = "BUY_SETUP"
    BULLISH = "BULLISH"
    NEUTRAL = "NEUTRAL"
    BEARISH = "BEARISH"
    SELL_SETUP = "SELL_SETUP"
    EXTREME_SELL = "EXTREME_SELL"


class Bias(str, Enum):
    """Overall directional bias of a combined score."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


# Zones are checked top-down; the first threshold the index reaches wins.
# The sell side (40/21/6) deliberately does not mirror the buy side (60/80/95).
SIGNAL_ZONES: tuple[tuple[float, Signal], ...] = (
    (95.0, Signal.EXTREME_BUY),
    (80.0, Signal.BUY_SETUP),
    (60.0, Signal.BULLISH),
    (40.0, Signal.NEUTRAL),
    (21.0, Signal.BEARISH),
    (6.0, Signal.SELL_SETUP),
)


class InsufficientDataError(ValueError):
    """Raised when a market's history is too short to score.

    Attributes
    ----------
    market : str
        Market identifier the history belongs to.
    required : int
        Minimum number of records needed.
    available : int
        Number of records actually present.
    """

    def __init__(self, market: str, required: int, available: int) -> None:
        self.market = market
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient data for market {market}: need at least "
            f"{required} records, got {available}"
        )


# ---------------------------------------------------------------------------
# Output dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WindowStatistics:
    """Population statistics over one lookback window of net positions."""

    min: float
    max: float
    mean: float
    std_dev: float


@dataclass(frozen=True)
class OverallScore:
    """Combined reading of both indices plus momentum."""

    overall_score: float
    bias: Bias
    confidence: int


@dataclass(frozen=True)
class COTScore:
    """Score for one market on one report date.

    Attributes
    ----------
    market : str
        Market identifier.
    symbol : str
        Display label for the market.
    report_date : date
        Report date being scored.
    commercial_long, commercial_short, noncommercial_long, noncommercial_short : int
        Raw positions echoed from the input record.
    commercial_net, noncommercial_net : int
        Long minus short per trader category.
    commercial_index : float
        Commercial net normalized within the window, in [0, 100].
    large_trader_index : float
        Inverted non-commercial normalization, in [0, 100].
    commercial_signal, large_trader_signal : Signal
        Zone classification of each index.
    overall_score : float
        Weighted blend with momentum adjustment, in [0, 100].
    bias : Bias
        BULLISH (>= 70), BEARISH (<= 30) or NEUTRAL.
    confidence : int
        Confidence in [50, 95].
    commercial_change_4week, commercial_change_13week : int
        Change in commercial net over 4 and 13 reports (0 if history is short).
    lookback_weeks : int
        Number of records in the window actually used.
    extreme_level : bool
        Either index at or beyond the 90/10 boundary.
    """

    market: str
    symbol: str
    report_date: date
    commercial_long: int
    commercial_short: int
    noncommercial_long: int
    noncommercial_short: int
    commercial_net: int
    noncommercial_net: int
    commercial_index: float
    large_trader_index: float
    commercial_signal: Signal
    large_trader_signal: Signal
    overall_score: float
    bias: Bias
    confidence: int
    commercial_change_4week: int
    commercial_change_13week: int
    lookback_weeks: int
    extreme_level: bool

    def to_dict(self) -> dict:
        """JSON-ready mapping: dates as ISO strings, enums as their values."""
        payload = asdict(self)
        payload["report_date"] = self.report_date.isoformat()
        payload["commercial_signal"] = self.commercial_signal.value
        payload["large_trader_signal"] = self.large_trader_signal.value
        payload["bias"] = self.bias.value
        return payload


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def compute_window_statistics(values: list[float] | np.ndarray) -> WindowStatistics:
    """Population min, max, mean and standard deviation of a window.

    Parameters
    ----------
    values : list[float] | np.ndarray
        Net positions in the window. Must be non-empty.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        raise ValueError("Cannot compute statistics over an empty window")
    mean = float(arr.mean())
    return WindowStatistics(
        min=float(arr.min()),
        max=float(arr.max()),
        mean=mean,
        std_dev=float(np.sqrt(np.mean((arr - mean) ** 2))),
    )


def normalize(value: float, low: float, high: float) -> float:
    """Rescale ``value`` to 0-100 within ``[low, high]``, clamped.

    A flat window (``high == low``) returns the 50 midpoint.
    """
    if high == low:
        return FLAT_WINDOW_INDEX
    index = (value - low) / (high - low) * 100.0
    return float(np.clip(index, 0.0, 100.0))


def classify_signal(index: float) -> Signal:
    """Map a 0-100 index to its signal zone."""
    for threshold, signal in SIGNAL_ZONES:
        if index >= threshold:
            return signal
    return Signal.EXTREME_SELL


def momentum_adjustment(change_4week: float, change_13week: float) -> float:
    """+5 when both changes are positive, -5 when both negative, else 0."""
    if change_4week > 0 and change_13week > 0:
        return MOMENTUM_ADJUSTMENT
    if change_4week < 0 and change_13week < 0:
        return -MOMENTUM_ADJUSTMENT
    return 0.0


def classify_bias(overall_score: float) -> Bias:
    if overall_score >= BULLISH_BIAS_THRESHOLD:
        return Bias.BULLISH
    if overall_score <= BEARISH_BIAS_THRESHOLD:
        return Bias.BEARISH
    return Bias.NEUTRAL


def _is_extreme(index: float, high: float, low: float) -> bool:
    return index >= high or index <= low


def compute_confidence(commercial_index: float, large_trader_index: float) -> int:
    """Confidence from index extremeness and agreement, capped at 95.

    The commercial 80/20 and 90/10 bonuses both apply when the tighter one
    fires.
    """
    confidence = BASE_CONFIDENCE
    if _is_extreme(commercial_index, EXTREME_HIGH, EXTREME_LOW):
        confidence += COMMERCIAL_EXTREME_BONUS
    if _is_extreme(large_trader_index, EXTREME_HIGH, EXTREME_LOW):
        confidence += LARGE_TRADER_EXTREME_BONUS
    if abs(commercial_index - large_trader_index) <= AGREEMENT_SPREAD:
        confidence += AGREEMENT_BONUS
    if _is_extreme(commercial_index, TIGHT_EXTREME_HIGH, TIGHT_EXTREME_LOW):
        confidence += COMMERCIAL_TIGHT_EXTREME_BONUS
    return min(MAX_CONFIDENCE, confidence)


def compute_overall_score(
    commercial_index: float,
    large_trader_index: float,
    change_4week: float,
    change_13week: float,
) -> OverallScore:
    """Blend both indices with momentum into score, bias and confidence."""
    base = (
        commercial_index * COMMERCIAL_WEIGHT
        + large_trader_index * LARGE_TRADER_WEIGHT
    )
    score = float(
        np.clip(base + momentum_adjustment(change_4week, change_13week), 0.0, 100.0)
    )
    return OverallScore(
        overall_score=score,
        bias=classify_bias(score),
        confidence=compute_confidence(commercial_index, large_trader_index),
    )


def is_extreme_level(commercial_index: float, large_trader_index: float) -> bool:
    """True if either index is at or beyond the 90/10 boundary."""
    return _is_extreme(
        commercial_index, TIGHT_EXTREME_HIGH, TIGHT_EXTREME_LOW
    ) or _is_extreme(large_trader_index, TIGHT_EXTREME_HIGH, TIGHT_EXTREME_LOW)


def minimum_history(lookback_weeks: int) -> int:
    """Fewest records a history needs before it can be scored at all."""
    return min(MIN_WINDOW_RECORDS, lookback_weeks + HISTORY_MARGIN)


def minimum_window(lookback_weeks: int) -> int:
    """Fewest records a single week's window needs to be scored."""
    return min(MIN_WINDOW_RECORDS, lookback_weeks)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def score_history(
    history: PositionHistory,
    lookback_weeks: int = DEFAULT_LOOKBACK_WEEKS,
    market: str = "",
    symbol: str | None = None,
) -> list[COTScore]:
    """Score every week of a market's history against its trailing window.

    Parameters
    ----------
    history : PositionHistory
        Newest-first positions. Should carry ``lookback_weeks + 13`` records
        so the oldest scored week still has a 13-week rate of change.
    lookback_weeks : int
        Configured lookback; also the maximum number of weeks scored.
    market : str
        Market identifier echoed into each score.
    symbol : str | None
        Display label; defaults to ``market``.

    Returns
    -------
    list[COTScore]
        Scores in chronological order (oldest first).

    Raises
    ------
    InsufficientDataError
        If the history holds fewer than ``min(10, lookback_weeks + 5)`` records.
    """
    if lookback_weeks < 1:
        raise ValueError(f"lookback_weeks must be positive, got {lookback_weeks}")

    required = minimum_history(lookback_weeks)
    if len(history) < required:
        raise InsufficientDataError(market, required, len(history))

    label = symbol if symbol is not None else market
    min_window = minimum_window(lookback_weeks)
    scores: list[COTScore] = []

    for i in range(min(lookback_weeks, len(history))):
        window = extract_window(history, i, lookback_weeks)
        if len(window) < min_window:
            continue

        record = history[i]
        commercial_stats = compute_window_statistics(
            [r.commercial_net for r in window]
        )
        noncommercial_stats = compute_window_statistics(
            [r.noncommercial_net for r in window]
        )

        commercial_index = normalize(
            record.commercial_net, commercial_stats.min, commercial_stats.max
        )
        # Heavy speculative length reads as bearish, so the scale is flipped
        large_trader_index = 100.0 - normalize(
            record.noncommercial_net,
            noncommercial_stats.min,
            noncommercial_stats.max,
        )

        change_4week = rate_of_change(history, i, 4, "commercial_net")
        change_13week = rate_of_change(history, i, 13, "commercial_net")
        combined = compute_overall_score(
            commercial_index, large_trader_index, change_4week, change_13week
        )

        scores.append(
            COTScore(
                market=market,
                symbol=label,
                report_date=record.report_date,
                commercial_long=record.commercial_long,
                commercial_short=record.commercial_short,
                noncommercial_long=record.noncommercial_long,
                noncommercial_short=record.noncommercial_short,
                commercial_net=record.commercial_net,
                noncommercial_net=record.noncommercial_net,
                commercial_index=commercial_index,
                large_trader_index=large_trader_index,
                commercial_signal=classify_signal(commercial_index),
                large_trader_signal=classify_signal(large_trader_index),
                overall_score=combined.overall_score,
                bias=combined.bias,
                confidence=combined.confidence,
                commercial_change_4week=change_4week,
                commercial_change_13week=change_13week,
                lookback_weeks=len(window),
                extreme_level=is_extreme_level(commercial_index, large_trader_index),
            )
        )

    scores.reverse()
    return scores
