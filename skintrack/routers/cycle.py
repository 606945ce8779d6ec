"""Cycle tracker endpoints: day marking, profile, forecast and month calendar."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Path, Query

from skintrack.cycle.day_key import to_day_key
from skintrack.cycle.ports import CycleProfileError
from skintrack.dependencies import CycleServiceDep
from skintrack.models.base import ErrorDetail
from skintrack.models.cycle import (
    CalendarDayRead,
    CalendarMonthRead,
    CycleDayEventRead,
    CycleProfileRead,
    CycleProfileUpdate,
    CycleSetup,
    DayToggleResult,
    ForecastRead,
    PeriodRangeResult,
    PeriodRangeUpdate,
)

router = APIRouter(prefix="/cycle", tags=["cycle"])
logger = logging.getLogger("skintrack.routers.cycle")


def _key(day: date | None) -> int | None:
    return to_day_key(day) if day is not None else None


# ---------- Day events ----------

@router.get("/events", response_model=list[CycleDayEventRead])
async def list_events(
    service: CycleServiceDep,
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
) -> Any:
    events = await service.list_events(_key(start), _key(end))
    return [CycleDayEventRead.from_event(e) for e in events]


@router.post("/days/{day}/toggle-period", response_model=DayToggleResult)
async def toggle_period_day(day: date, service: CycleServiceDep) -> Any:
    key = to_day_key(day)
    value = await service.toggle_day(key)
    return DayToggleResult(day=day, day_key=key, value=value)


@router.post("/days/{day}/toggle-pregnancy", response_model=DayToggleResult)
async def toggle_pregnancy_day(day: date, service: CycleServiceDep) -> Any:
    key = to_day_key(day)
    value = await service.toggle_pregnancy_day(key)
    return DayToggleResult(day=day, day_key=key, value=value)


@router.put("/range", response_model=PeriodRangeResult)
async def set_period_range(body: PeriodRangeUpdate, service: CycleServiceDep) -> Any:
    days = await service.set_range(to_day_key(body.start), to_day_key(body.end), body.is_period)
    return PeriodRangeResult(
        start=min(body.start, body.end),
        end=max(body.start, body.end),
        is_period=body.is_period,
        days=days,
    )


# ---------- Profile ----------

@router.get(
    "/profile", response_model=CycleProfileRead, responses={404: {"model": ErrorDetail}}
)
async def get_profile(service: CycleServiceDep) -> Any:
    profile = await service.get_profile()
    if profile is None:
        raise HTTPException(status_code=404, detail="Cycle profile not set up")
    return profile


@router.put(
    "/profile", response_model=CycleProfileRead, responses={400: {"model": ErrorDetail}}
)
async def update_profile(body: CycleProfileUpdate, service: CycleServiceDep) -> Any:
    try:
        return await service.save_profile(body.cycle_length_days, body.period_length_days)
    except CycleProfileError as exc:
        logger.info("Rejected cycle profile: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post(
    "/setup", response_model=CycleProfileRead, responses={400: {"model": ErrorDetail}}
)
async def setup_cycle(body: CycleSetup, service: CycleServiceDep) -> Any:
    try:
        return await service.setup_cycle(
            body.cycle_length_days,
            body.period_length_days,
            to_day_key(body.period_start),
        )
    except CycleProfileError as exc:
        logger.info("Rejected cycle profile: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# ---------- Forecast ----------

@router.get("/forecast", response_model=ForecastRead)
async def get_forecast(
    service: CycleServiceDep,
    today: date | None = Query(default=None),
    horizon: date | None = Query(default=None),
) -> Any:
    result = await service.forecast(_key(today), _key(horizon))
    return ForecastRead.from_result(result)


@router.get("/calendar/{year}/{month}", response_model=CalendarMonthRead)
async def get_calendar_month(
    service: CycleServiceDep,
    year: int = Path(ge=1970, le=9999),
    month: int = Path(ge=1, le=12),
    today: date | None = Query(default=None),
) -> Any:
    days, result = await service.calendar_month(year, month, _key(today))
    forecast = ForecastRead.from_result(result)
    return CalendarMonthRead(
        year=year,
        month=month,
        days=[CalendarDayRead.from_day(d) for d in days],
        next_period_start=forecast.next_period_start,
        current_cycle_day=forecast.current_cycle_day,
    )
