"""Group period day keys into contiguous runs.

A run is a maximal sequence of period days with no calendar gap.  Runs are
the unit every downstream computation works on: their starts give cycle
lengths, their sizes give period lengths, and the latest one anchors the
forecast.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from skintrack.cycle.day_key import diff_in_days, iter_day_keys


@dataclass(frozen=True)
class PeriodRun:
    """A maximal contiguous sequence of period days.

    Attributes:
        start:  Day key of the first day.
        end:    Day key of the last day (equal to ``start`` for one-day runs).
        length: Number of days in the run.
    """

    start: int
    end: int
    length: int

    def days(self) -> list[int]:
        return list(iter_day_keys(self.start, self.end))


def detect_runs(day_keys: Iterable[int]) -> list[PeriodRun]:
    """Split a set of period day keys into runs ordered by start.

    Duplicates are ignored.  A new run begins whenever the gap to the
    previous day is more than one calendar day.

    Args:
        day_keys: Period day keys in any order.

    Returns:
        Runs ordered by start ascending; empty for empty input.
    """
    runs: list[PeriodRun] = []
    start: int | None = None
    previous: int | None = None
    length = 0

    for day in sorted(set(day_keys)):
        if previous is not None and diff_in_days(previous, day) <= 1:
            previous = day
            length += 1
            continue
        if start is not None and previous is not None:
            runs.append(PeriodRun(start=start, end=previous, length=length))
        start = previous = day
        length = 1

    if start is not None and previous is not None:
        runs.append(PeriodRun(start=start, end=previous, length=length))
    return runs


def latest_run_start(day_keys: Iterable[int]) -> int | None:
    """Return the start of the most recent run, or None without history."""
    runs = detect_runs(day_keys)
    return runs[-1].start if runs else None
