"""Pydantic models for the cycle tracker API."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, model_validator

from skintrack.cycle.day_key import from_day_key
from skintrack.cycle.forecast import CalendarDay, DayMark, ForecastResult
from skintrack.cycle.inference import StatSource
from skintrack.cycle.ports import CycleDayEvent
from skintrack.models.base import SkinTrackBase


def _dates(day_keys: set[int]) -> list[date]:
    return [from_day_key(k) for k in sorted(day_keys)]


# ---------- Day events ----------

class CycleDayEventRead(SkinTrackBase):
    day_key: int
    day: date
    is_period: bool
    is_pregnancy: bool

    @classmethod
    def from_event(cls, event: CycleDayEvent) -> "CycleDayEventRead":
        return cls(
            day_key=event.day_key,
            day=from_day_key(event.day_key),
            is_period=event.is_period,
            is_pregnancy=event.is_pregnancy,
        )


class DayToggleResult(SkinTrackBase):
    day: date
    day_key: int
    value: bool


class PeriodRangeUpdate(SkinTrackBase):
    start: date
    end: date
    is_period: bool = True


class PeriodRangeResult(SkinTrackBase):
    start: date
    end: date
    is_period: bool
    days: int


# ---------- Profile ----------

class CycleProfileBase(SkinTrackBase):
    cycle_length_days: int = Field(ge=21, le=60)
    period_length_days: int = Field(ge=2, le=12)

    @model_validator(mode="after")
    def _period_within_cycle(self) -> "CycleProfileBase":
        if self.period_length_days > self.cycle_length_days:
            raise ValueError("period_length_days cannot exceed cycle_length_days")
        return self


class CycleProfileUpdate(CycleProfileBase):
    pass


class CycleSetup(CycleProfileBase):
    period_start: date


class CycleProfileRead(SkinTrackBase):
    cycle_length_days: int
    period_length_days: int
    updated_at: datetime | None = None


# ---------- Forecast ----------

class ForecastRead(SkinTrackBase):
    predicted_period_days: list[date] = Field(default_factory=list)
    fertile_days: list[date] = Field(default_factory=list)
    ovulation_days: list[date] = Field(default_factory=list)
    next_period_start: date | None = None
    inferred_cycle_length: int | None = None
    inferred_period_length: int | None = None
    cycle_length_source: StatSource | None = None
    period_length_source: StatSource | None = None
    current_cycle_day: int | None = None

    @classmethod
    def from_result(cls, result: ForecastResult) -> "ForecastRead":
        return cls(
            predicted_period_days=_dates(result.predicted_period_days),
            fertile_days=_dates(result.fertile_days),
            ovulation_days=_dates(result.ovulation_days),
            next_period_start=(
                from_day_key(result.next_period_start)
                if result.next_period_start is not None
                else None
            ),
            inferred_cycle_length=result.inferred_cycle_length,
            inferred_period_length=result.inferred_period_length,
            cycle_length_source=result.stats.cycle_length_source if result.stats else None,
            period_length_source=result.stats.period_length_source if result.stats else None,
            current_cycle_day=result.current_cycle_day,
        )


class CalendarDayRead(SkinTrackBase):
    day: date
    day_key: int
    in_month: bool
    is_today: bool
    mark: DayMark

    @classmethod
    def from_day(cls, day: CalendarDay) -> "CalendarDayRead":
        return cls(
            day=day.date,
            day_key=day.day_key,
            in_month=day.in_month,
            is_today=day.is_today,
            mark=day.mark,
        )


class CalendarMonthRead(SkinTrackBase):
    year: int
    month: int
    days: list[CalendarDayRead]
    next_period_start: date | None = None
    current_cycle_day: int | None = None
