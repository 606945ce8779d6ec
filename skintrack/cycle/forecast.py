"""Menstrual cycle forecasting engine.

Projects future period windows, fertile windows and ovulation estimates from
a history of period days, and works out the current cycle day.

The projection is calendar-only:

- Next period = start of the anchor run + cycle length, repeated for as many
  cycles as needed to cover the requested horizon (at least 8).
- Ovulation = predicted start - luteal phase (17 days by default), but never
  on or before the end of the preceding period window.
- Fertile window = ovulation - 5 .. ovulation + 1.

Everything here is pure: no I/O, no clock reads unless ``today`` is omitted.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Mapping

from skintrack.cycle.config_loader import CyclePolicy, get_cycle_policy
from skintrack.cycle.day_key import add_days, diff_in_days, iter_day_keys, to_day_key, today_key
from skintrack.cycle.inference import CycleStats, infer_cycle_stats
from skintrack.cycle.ports import CycleDayEvent
from skintrack.cycle.runs import PeriodRun, detect_runs

logger = logging.getLogger("skintrack.cycle.forecast")


class DayMark(str, Enum):
    """How a single calendar day is displayed."""

    period = "period"
    pregnancy = "pregnancy"
    predicted_period = "predicted_period"
    ovulation = "ovulation"
    fertile = "fertile"
    none = "none"


@dataclass
class ForecastResult:
    """Projection derived from a history snapshot (never persisted).

    Attributes:
        predicted_period_days:  Day keys inside predicted period windows.
        fertile_days:           Day keys inside predicted fertile windows.
        ovulation_days:         Estimated ovulation day keys.
        next_period_start:      First predicted period day, or None.
        inferred_cycle_length:  Cycle length used for projection.
        inferred_period_length: Period length used for projection.
        current_cycle_day:      1-indexed day within the current cycle.
        stats:                  Cycle stats with their provenance.
    """

    predicted_period_days: set[int] = field(default_factory=set)
    fertile_days: set[int] = field(default_factory=set)
    ovulation_days: set[int] = field(default_factory=set)
    next_period_start: int | None = None
    inferred_cycle_length: int | None = None
    inferred_period_length: int | None = None
    current_cycle_day: int | None = None
    stats: CycleStats | None = None

    @property
    def is_empty(self) -> bool:
        return self.next_period_start is None

    def mark_for(self, day_key: int, event: CycleDayEvent | None = None) -> DayMark:
        """Classify a day: recorded state first, then the forecast."""
        if event is not None:
            if event.is_period:
                return DayMark.period
            if event.is_pregnancy:
                return DayMark.pregnancy
        if day_key in self.predicted_period_days:
            return DayMark.predicted_period
        if day_key in self.ovulation_days:
            return DayMark.ovulation
        if day_key in self.fertile_days:
            return DayMark.fertile
        return DayMark.none


class CycleForecaster:
    """Project cycles forward from recorded period days.

    Usage::

        forecaster = CycleForecaster()
        result = forecaster.forecast(period_day_keys, today_key=to_day_key(date.today()))
        print(result.next_period_start, result.current_cycle_day)
    """

    def __init__(self, policy: CyclePolicy | None = None) -> None:
        self._policy = policy or get_cycle_policy()

    @property
    def policy(self) -> CyclePolicy:
        return self._policy

    def forecast(
        self,
        period_day_keys: Iterable[int],
        today_key: int,
        override_cycle_length: int | None = None,
        override_period_length: int | None = None,
        horizon_key: int | None = None,
    ) -> ForecastResult:
        """Compute a forecast from a full history snapshot.

        Args:
            period_day_keys:        Every recorded period day (any order).
            today_key:              Day key of "today".
            override_cycle_length:  Configured cycle length, if the user set one.
            override_period_length: Configured period length, if the user set one.
            horizon_key:            Project at least far enough to cover this day.

        Returns:
            ForecastResult.  Without any history every field is empty/None.
        """
        runs = detect_runs(period_day_keys)
        if not runs:
            logger.debug("No period history; returning empty forecast")
            return ForecastResult()

        stats = infer_cycle_stats(
            runs,
            cycle_length_override=override_cycle_length,
            period_length_override=override_period_length,
            policy=self._policy,
        )
        past_runs = [run for run in runs if run.start <= today_key]
        # Only future-dated history (e.g. setup ahead of time): anchor on the last run
        anchor = past_runs[-1] if past_runs else runs[-1]

        result = ForecastResult(
            inferred_cycle_length=stats.cycle_length,
            inferred_period_length=stats.period_length,
            stats=stats,
        )
        next_start = add_days(anchor.start, stats.cycle_length)
        result.next_period_start = next_start
        cycles = self.cycle_count(next_start, stats.cycle_length, horizon_key)
        self._project(result, next_start, anchor, stats, cycles)

        if past_runs:
            result.current_cycle_day = max(1, diff_in_days(past_runs[-1].start, today_key) + 1)

        logger.debug(
            "Forecast: anchor=%d next=%d cycle=%d period=%d cycle_day=%s",
            anchor.start, result.next_period_start, stats.cycle_length,
            stats.period_length, result.current_cycle_day,
        )
        return result

    def cycle_count(
        self, next_period_start: int, cycle_length: int, horizon_key: int | None
    ) -> int:
        """Number of cycles to project so ``horizon_key`` is covered."""
        fc = self._policy.forecast
        if horizon_key is None or horizon_key <= next_period_start:
            return fc.min_cycles
        days_ahead = diff_in_days(next_period_start, horizon_key)
        return max(
            fc.min_cycles,
            math.ceil(days_ahead / max(1, cycle_length)) + fc.horizon_extra_cycles,
        )

    def _project(
        self,
        result: ForecastResult,
        first_start: int,
        anchor: PeriodRun,
        stats: CycleStats,
        cycles: int,
    ) -> None:
        luteal = self._policy.forecast.luteal_phase_days
        window = self._policy.fertile_window
        previous_period_end = anchor.end

        for cycle_offset in range(cycles):
            start = add_days(first_start, cycle_offset * stats.cycle_length)
            end = add_days(start, stats.period_length - 1)
            result.predicted_period_days.update(iter_day_keys(start, end))

            # Ovulation may not fall inside or before the preceding period
            ovulation = max(add_days(start, -luteal), add_days(previous_period_end, 1))
            result.ovulation_days.add(ovulation)
            result.fertile_days.update(
                iter_day_keys(
                    add_days(ovulation, -window.days_before_ovulation),
                    add_days(ovulation, window.days_after_ovulation),
                )
            )
            previous_period_end = end


def compute_forecast(
    period_day_keys: Iterable[int],
    today_key: int,
    override_cycle_length: int | None = None,
    override_period_length: int | None = None,
    horizon_key: int | None = None,
    policy: CyclePolicy | None = None,
) -> ForecastResult:
    """Functional shortcut for ``CycleForecaster(policy).forecast(...)``."""
    return CycleForecaster(policy).forecast(
        period_day_keys,
        today_key,
        override_cycle_length=override_cycle_length,
        override_period_length=override_period_length,
        horizon_key=horizon_key,
    )


# ---------------------------------------------------------------------------
# Month calendar
# ---------------------------------------------------------------------------

CALENDAR_GRID_DAYS = 42


@dataclass(frozen=True)
class CalendarDay:
    day_key: int
    date: date
    in_month: bool
    is_today: bool
    mark: DayMark


def calendar_grid_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last date of the six-week, Monday-first grid for a month."""
    first = date(year, month, 1)
    grid_start = first - timedelta(days=first.weekday())
    return grid_start, grid_start + timedelta(days=CALENDAR_GRID_DAYS - 1)


def build_calendar_month(
    year: int,
    month: int,
    forecast: ForecastResult,
    events: Mapping[int, CycleDayEvent] | Iterable[CycleDayEvent] = (),
    today: int | None = None,
) -> list[CalendarDay]:
    """Mark every day of a month grid with recorded and predicted state.

    The grid always holds 42 days starting on the Monday on or before the
    1st, so leading and trailing days of adjacent months are included with
    ``in_month=False``.
    """
    if not isinstance(events, Mapping):
        events = {event.day_key: event for event in events}
    current = today if today is not None else today_key()
    grid_start, _ = calendar_grid_bounds(year, month)

    days: list[CalendarDay] = []
    for offset in range(CALENDAR_GRID_DAYS):
        day = grid_start + timedelta(days=offset)
        key = to_day_key(day)
        days.append(
            CalendarDay(
                day_key=key,
                date=day,
                in_month=day.month == month,
                is_today=key == current,
                mark=forecast.mark_for(key, events.get(key)),
            )
        )
    return days
