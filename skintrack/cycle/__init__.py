"""Menstrual cycle tracking for SkinTrack.

This subpackage turns a history of marked days into a forecast of future
periods, fertile windows and ovulation, and applies day-level edits to that
history.  All computation is local; persistence goes through the
``CycleStore`` port.

Modules:
    day_key       — Local-midnight integer identity for calendar days
    runs          — Contiguous period-day run detection
    inference     — Cycle/period length inference with user overrides
    forecast      — Forward projection and month calendar marking
    mutator       — Serialized day/range edits (CycleService)
    ports         — Records, profile validation and the store protocol
    config_loader — Load/validate/hot-reload cycle_policy.yaml
"""

from skintrack.cycle.config_loader import CyclePolicy, get_cycle_policy
from skintrack.cycle.forecast import CycleForecaster, DayMark, ForecastResult, compute_forecast
from skintrack.cycle.mutator import CycleService
from skintrack.cycle.ports import CycleDayEvent, CycleProfile, CycleProfileError, CycleStore
from skintrack.cycle.runs import PeriodRun, detect_runs

__all__ = [
    "CycleDayEvent",
    "CycleForecaster",
    "CyclePolicy",
    "CycleProfile",
    "CycleProfileError",
    "CycleService",
    "CycleStore",
    "DayMark",
    "ForecastResult",
    "PeriodRun",
    "compute_forecast",
    "detect_runs",
    "get_cycle_policy",
]
