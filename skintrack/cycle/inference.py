"""Infer cycle and period length from recorded runs.

User-configured values always win (after clamping).  Without them, the
rolling mean of the most recent runs is used, clamped to plausible bounds so
a single anomalous run cannot produce an absurd forecast.
"""

from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from skintrack.cycle.config_loader import CyclePolicy, LengthBounds, get_cycle_policy
from skintrack.cycle.day_key import diff_in_days
from skintrack.cycle.runs import PeriodRun

logger = logging.getLogger("skintrack.cycle.inference")


class StatSource(str, Enum):
    configured = "configured"
    inferred = "inferred"
    default = "default"


@dataclass(frozen=True)
class CycleStats:
    """Cycle parameters used for projection, with where each came from."""

    cycle_length: int
    period_length: int
    cycle_length_source: StatSource
    period_length_source: StatSource


def round_half_up(value: float) -> int:
    """Round to the nearest int, with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def start_gaps(runs: Sequence[PeriodRun]) -> list[int]:
    """Days between consecutive run starts, oldest first."""
    return [diff_in_days(prev.start, cur.start) for prev, cur in zip(runs, runs[1:])]


def _rolling(
    values: list[int], bounds: LengthBounds
) -> tuple[int, StatSource]:
    recent = values[-bounds.rolling_window:]
    if not recent:
        return bounds.default_days, StatSource.default
    return bounds.clamp_inferred(round_half_up(statistics.mean(recent))), StatSource.inferred


def infer_cycle_stats(
    runs: Sequence[PeriodRun],
    cycle_length_override: int | None = None,
    period_length_override: int | None = None,
    policy: CyclePolicy | None = None,
) -> CycleStats:
    """Resolve cycle and period length for a run history.

    Args:
        runs:                   Runs ordered by start ascending.
        cycle_length_override:  User-configured cycle length, if any.
        period_length_override: User-configured period length, if any.
        policy:                 Bounds and defaults (global policy if omitted).

    Returns:
        CycleStats.  Overrides are clamped into the configurable range and
        history is not consulted for that field.
    """
    policy = policy or get_cycle_policy()

    if cycle_length_override is not None:
        cycle_length = policy.cycle_length.clamp(int(cycle_length_override))
        cycle_source = StatSource.configured
    else:
        cycle_length, cycle_source = _rolling(start_gaps(runs), policy.cycle_length)

    if period_length_override is not None:
        period_length = policy.period_length.clamp(int(period_length_override))
        period_source = StatSource.configured
    else:
        period_length, period_source = _rolling(
            [run.length for run in runs], policy.period_length
        )

    logger.debug(
        "Cycle stats from %d run(s): cycle=%d (%s) period=%d (%s)",
        len(runs), cycle_length, cycle_source.value, period_length, period_source.value,
    )
    return CycleStats(
        cycle_length=cycle_length,
        period_length=period_length,
        cycle_length_source=cycle_source,
        period_length_source=period_source,
    )
