"""Position records and the newest-first history they are scored from.

A ``PositionHistory`` is the only shape the scoring engine reads. It is
always ordered by report date, newest first, so that position ``i`` is
``i`` weeks before the most recent report and a lookback window is a plain
forward slice ``[i, i + length)``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import overload


@dataclass(frozen=True)
class PositionRecord:
    """One market's legacy COT positions for a single report date.

    Attributes
    ----------
    report_date : date
        The Tuesday the report represents.
    commercial_long, commercial_short : int
        Open contracts held by commercial (hedging) traders.
    noncommercial_long, noncommercial_short : int
        Open contracts held by non-commercial (large speculative) traders.
    open_interest : int | None
        Total open interest, when the source provides it.
    """

    report_date: date
    commercial_long: int
    commercial_short: int
    noncommercial_long: int
    noncommercial_short: int
    open_interest: int | None = None

    @property
    def commercial_net(self) -> int:
        return self.commercial_long - self.commercial_short

    @property
    def noncommercial_net(self) -> int:
        return self.noncommercial_long - self.noncommercial_short


class PositionHistory(Sequence[PositionRecord]):
    """Immutable, newest-first sequence of ``PositionRecord``.

    Records are sorted on construction; duplicate report dates are rejected
    with ``ValueError``.
    """

    def __init__(self, records: Iterable[PositionRecord]) -> None:
        ordered = sorted(records, key=lambda r: r.report_date, reverse=True)
        seen: set[date] = set()
        for rec in ordered:
            if rec.report_date in seen:
                raise ValueError(f"Duplicate report date in history: {rec.report_date}")
            seen.add(rec.report_date)
        self._records: tuple[PositionRecord, ...] = tuple(ordered)

    @overload
    def __getitem__(self, index: int) -> PositionRecord: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[PositionRecord, ...]: ...

    def __getitem__(self, index):
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        if not self._records:
            return "PositionHistory([])"
        return (
            f"PositionHistory(n={len(self._records)}, "
            f"newest={self._records[0].report_date}, "
            f"oldest={self._records[-1].report_date})"
        )


def extract_window(
    history: PositionHistory, start: int, length: int
) -> tuple[PositionRecord, ...]:
    """Return the lookback window ending at ``start``.

    The window holds at most ``length`` records, beginning at ``history[start]``
    and moving strictly back in time. It is truncated at the oldest record,
    so it may be shorter than ``length``.

    Parameters
    ----------
    history : PositionHistory
        Newest-first position history.
    start : int
        Index of the record being scored.
    length : int
        Requested lookback in weeks.

    Returns
    -------
    tuple[PositionRecord, ...]
        The records ``history[start:min(start + length, len(history))]``.
    """
    if start < 0 or length < 0:
        raise ValueError(f"start and length must be non-negative, got {start}, {length}")
    end = min(start + length, len(history))
    return history[start:end]


def rate_of_change(
    history: PositionHistory, index: int, weeks: int, field: str
) -> int:
    """Change in ``field`` over ``weeks`` reports, looking back from ``index``.

    Returns 0 when the history does not reach ``index + weeks``.
    """
    if index + weeks >= len(history):
        return 0
    return getattr(history[index], field) - getattr(history[index + weeks], field)
