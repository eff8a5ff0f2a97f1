"""COT positioning scores: normalized commercial / large-trader sentiment."""

from cotscope.signals.sentiment.cot_scoring import (
    Bias,
    COTScore,
    InsufficientDataError,
    Signal,
    WindowStatistics,
    classify_signal,
    normalize,
    score_history,
)
from cotscope.signals.sentiment.history import (
    PositionHistory,
    PositionRecord,
    extract_window,
    rate_of_change,
)
from cotscope.signals.sentiment.scanner import ExtremeSignals, MarketScanner

__all__ = [
    "Bias",
    "COTScore",
    "ExtremeSignals",
    "InsufficientDataError",
    "MarketScanner",
    "PositionHistory",
    "PositionRecord",
    "Signal",
    "WindowStatistics",
    "classify_signal",
    "extract_window",
    "normalize",
    "rate_of_change",
    "score_history",
]
