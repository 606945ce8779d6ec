"""Apply day-level edits to cycle history.

Each day is in exactly one of three states: nothing recorded, period, or
pregnancy.  Marking one flag clears the other, and a day that ends up with
neither flag is deleted rather than stored empty.

``CycleService`` is the entry point the HTTP layer uses.  Every mutation is
serialized through one ``asyncio.Lock`` and runs inside the store's
transaction, so a range edit is never visible half-applied.  Incoming keys
are snapped to local midnight before use.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from skintrack.cycle.config_loader import CyclePolicy, get_cycle_policy
from skintrack.cycle.day_key import (
    add_days,
    iter_day_keys,
    normalize_day_key,
    to_day_key,
    today_key,
)
from skintrack.cycle.forecast import (
    CalendarDay,
    CycleForecaster,
    ForecastResult,
    build_calendar_month,
    calendar_grid_bounds,
)
from skintrack.cycle.ports import (
    CycleDayEvent,
    CycleProfile,
    CycleStore,
    validate_profile,
)
from skintrack.cycle.runs import latest_run_start

logger = logging.getLogger("skintrack.cycle.mutator")

ChangeListener = Callable[[str], None]


class CycleService:
    """Serialized cycle mutations plus forecast reads over a ``CycleStore``.

    Usage::

        service = CycleService(store)
        await service.set_range(start_key, end_key, True)
        forecast = await service.forecast()
    """

    def __init__(self, store: CycleStore, policy: CyclePolicy | None = None) -> None:
        self._store = store
        self._policy = policy or get_cycle_policy()
        self._forecaster = CycleForecaster(self._policy)
        self._lock = asyncio.Lock()
        self._listeners: list[ChangeListener] = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked with the operation name after each mutation."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        self._listeners.remove(listener)

    def _changed(self, operation: str) -> None:
        # Runs after commit; listener errors are logged, never raised
        for listener in list(self._listeners):
            try:
                listener(operation)
            except Exception:
                logger.exception("Change listener failed after %s", operation)

    # ------------------------------------------------------------------
    # Day state transitions
    # ------------------------------------------------------------------

    async def _current(self, day_key: int) -> CycleDayEvent | None:
        events = await self._store.list_cycle_day_events_in_range(day_key, day_key)
        return events[0] if events else None

    async def _write(
        self, day_key: int, existing: CycleDayEvent | None, target: CycleDayEvent
    ) -> None:
        """Persist ``target`` for a day, deleting it when it holds no flags."""
        if target.is_empty:
            if existing is not None:
                await self._store.delete_day_event(day_key)
            return
        if existing == target:
            return
        await self._store.upsert_day_event(
            day_key,
            {"is_period": target.is_period, "is_pregnancy": target.is_pregnancy},
        )

    @staticmethod
    def _with_period(day_key: int, existing: CycleDayEvent | None, value: bool) -> CycleDayEvent:
        pregnancy = existing.is_pregnancy if existing else False
        return CycleDayEvent(day_key, is_period=value, is_pregnancy=pregnancy and not value)

    @staticmethod
    def _with_pregnancy(
        day_key: int, existing: CycleDayEvent | None, value: bool
    ) -> CycleDayEvent:
        period = existing.is_period if existing else False
        return CycleDayEvent(day_key, is_period=period and not value, is_pregnancy=value)

    async def _set_period_locked(self, day_key: int, value: bool) -> None:
        existing = await self._current(day_key)
        await self._write(day_key, existing, self._with_period(day_key, existing, value))

    async def _set_pregnancy_locked(self, day_key: int, value: bool) -> None:
        existing = await self._current(day_key)
        await self._write(day_key, existing, self._with_pregnancy(day_key, existing, value))

    # ------------------------------------------------------------------
    # Public mutations
    # ------------------------------------------------------------------

    async def set_period_day(self, day_key: int, is_period: bool) -> None:
        day_key = normalize_day_key(day_key)
        async with self._lock, self._store.atomic():
            await self._set_period_locked(day_key, is_period)
        self._changed("set_period_day")

    async def set_pregnancy_day(self, day_key: int, is_pregnancy: bool) -> None:
        day_key = normalize_day_key(day_key)
        async with self._lock, self._store.atomic():
            await self._set_pregnancy_locked(day_key, is_pregnancy)
        self._changed("set_pregnancy_day")

    async def toggle_day(self, day_key: int) -> bool:
        """Flip the period flag of one day.

        Returns:
            The new value of ``is_period`` for the day.
        """
        day_key = normalize_day_key(day_key)
        async with self._lock, self._store.atomic():
            existing = await self._current(day_key)
            value = not (existing.is_period if existing else False)
            await self._write(day_key, existing, self._with_period(day_key, existing, value))
        logger.info("Toggled period day %d → %s", day_key, value)
        self._changed("toggle_day")
        return value

    async def toggle_pregnancy_day(self, day_key: int) -> bool:
        """Flip the pregnancy flag of one day; returns the new value."""
        day_key = normalize_day_key(day_key)
        async with self._lock, self._store.atomic():
            existing = await self._current(day_key)
            value = not (existing.is_pregnancy if existing else False)
            await self._write(
                day_key, existing, self._with_pregnancy(day_key, existing, value)
            )
        logger.info("Toggled pregnancy day %d → %s", day_key, value)
        self._changed("toggle_pregnancy_day")
        return value

    async def set_range(self, start_key: int, end_key: int, is_period: bool = True) -> int:
        """Set the period flag on every day of an inclusive range.

        The bounds may be given in either order.

        Returns:
            Number of days in the range.
        """
        start_key, end_key = normalize_day_key(start_key), normalize_day_key(end_key)
        async with self._lock, self._store.atomic():
            count = await self._set_range_locked(start_key, end_key, is_period)
        logger.info(
            "Set period=%s on %d day(s) from %d to %d",
            is_period, count, min(start_key, end_key), max(start_key, end_key),
        )
        self._changed("set_range")
        return count

    async def _set_range_locked(self, start_key: int, end_key: int, is_period: bool) -> int:
        low, high = min(start_key, end_key), max(start_key, end_key)
        existing = {
            event.day_key: event
            for event in await self._store.list_cycle_day_events_in_range(low, high)
        }
        count = 0
        for day_key in iter_day_keys(low, high):
            current = existing.get(day_key)
            await self._write(day_key, current, self._with_period(day_key, current, is_period))
            count += 1
        return count

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self) -> CycleProfile | None:
        return await self._store.get_cycle_profile()

    async def save_profile(self, cycle_length_days: int, period_length_days: int) -> CycleProfile:
        """Validate and store the cycle profile.

        Raises:
            CycleProfileError: Before any store call, if the values are invalid.
        """
        validate_profile(cycle_length_days, period_length_days, self._policy)
        async with self._lock, self._store.atomic():
            profile = await self._store.upsert_cycle_profile(cycle_length_days, period_length_days)
        logger.info(
            "Saved cycle profile: cycle=%d period=%d", cycle_length_days, period_length_days
        )
        self._changed("save_profile")
        return profile

    async def setup_cycle(
        self, cycle_length_days: int, period_length_days: int, period_start_key: int
    ) -> CycleProfile:
        """Save the profile and record the most recent period start.

        On first setup, or when ``period_start_key`` differs from the start of
        the latest recorded run, ``period_length_days`` days beginning at
        ``period_start_key`` are marked as period.  Profile and days are
        written in one transaction.

        Raises:
            CycleProfileError: Before any store call, if the values are invalid.
        """
        validate_profile(cycle_length_days, period_length_days, self._policy)
        period_start_key = normalize_day_key(period_start_key)
        async with self._lock, self._store.atomic():
            first_setup = await self._store.get_cycle_profile() is None
            profile = await self._store.upsert_cycle_profile(cycle_length_days, period_length_days)
            events = await self._store.list_all_cycle_day_events()
            latest_start = latest_run_start(e.day_key for e in events if e.is_period)
            if first_setup or latest_start != period_start_key:
                end_key = add_days(period_start_key, period_length_days - 1)
                await self._set_range_locked(period_start_key, end_key, True)
        logger.info("Cycle setup complete (first_setup=%s)", first_setup)
        self._changed("setup_cycle")
        return profile

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_events(
        self, start_key: int | None = None, end_key: int | None = None
    ) -> list[CycleDayEvent]:
        if start_key is not None:
            start_key = normalize_day_key(start_key)
        if end_key is not None:
            end_key = normalize_day_key(end_key)
        async with self._lock:
            if start_key is not None and end_key is not None:
                return await self._store.list_cycle_day_events_in_range(
                    min(start_key, end_key), max(start_key, end_key)
                )
            events = await self._store.list_all_cycle_day_events()
        return [
            e for e in events
            if (start_key is None or e.day_key >= start_key)
            and (end_key is None or e.day_key <= end_key)
        ]

    async def _snapshot(self) -> tuple[list[CycleDayEvent], CycleProfile | None]:
        async with self._lock:
            events = await self._store.list_all_cycle_day_events()
            profile = await self._store.get_cycle_profile()
        return events, profile

    async def forecast(
        self, today: int | None = None, horizon_key: int | None = None
    ) -> ForecastResult:
        """Recompute the forecast from a fresh read of history and profile."""
        events, profile = await self._snapshot()
        return self._forecast_from(events, profile, today, horizon_key)

    async def calendar_month(
        self, year: int, month: int, today: int | None = None
    ) -> tuple[list[CalendarDay], ForecastResult]:
        """Marked six-week grid for a month plus the forecast behind it.

        The forecast horizon is the last day of the grid, so predictions
        always reach the end of the displayed month.
        """
        events, profile = await self._snapshot()
        _, grid_end = calendar_grid_bounds(year, month)
        current = normalize_day_key(today) if today is not None else today_key()
        result = self._forecast_from(events, profile, current, to_day_key(grid_end))
        days = build_calendar_month(year, month, result, events, today=current)
        return days, result

    def _forecast_from(
        self,
        events: list[CycleDayEvent],
        profile: CycleProfile | None,
        today: int | None,
        horizon_key: int | None,
    ) -> ForecastResult:
        return self._forecaster.forecast(
            [e.day_key for e in events if e.is_period],
            normalize_day_key(today) if today is not None else today_key(),
            override_cycle_length=profile.cycle_length_days if profile else None,
            override_period_length=profile.period_length_days if profile else None,
            horizon_key=horizon_key,
        )
