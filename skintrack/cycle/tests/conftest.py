"""Shared fixtures and an in-memory store for cycle engine tests."""

from __future__ import annotations

import copy
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Callable

import pytest

from skintrack.cycle.config_loader import CyclePolicy, load_cycle_policy
from skintrack.cycle.day_key import to_day_key
from skintrack.cycle.mutator import CycleService
from skintrack.cycle.ports import CycleDayEvent, CycleProfile

# Monday, so month grids and offsets are easy to reason about
TEST_DATE = date(2026, 2, 23)


class InMemoryCycleStore:
    """``CycleStore`` double backed by dicts.

    ``atomic()`` snapshots state and restores it if the block raises, which
    is enough to check that mutations are all-or-nothing.  Every call is
    recorded in ``calls`` so tests can assert on what reached storage.
    """

    def __init__(
        self,
        events: list[CycleDayEvent] | None = None,
        profile: CycleProfile | None = None,
    ) -> None:
        self.events: dict[int, CycleDayEvent] = {e.day_key: e for e in events or []}
        self.profile = profile
        self.calls: list[tuple[str, tuple]] = []
        self.fail_on: str | None = None

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.fail_on == name:
            raise OSError(f"simulated I/O failure in {name}")

    @property
    def write_calls(self) -> list[str]:
        writes = {"upsert_day_event", "delete_day_event", "upsert_cycle_profile"}
        return [name for name, _ in self.calls if name in writes]

    @asynccontextmanager
    async def atomic(self) -> AsyncGenerator[None, None]:
        saved_events = copy.deepcopy(self.events)
        saved_profile = self.profile
        try:
            yield
        except BaseException:
            self.events = saved_events
            self.profile = saved_profile
            raise

    async def list_all_cycle_day_events(self) -> list[CycleDayEvent]:
        self._record("list_all_cycle_day_events")
        return [self.events[k] for k in sorted(self.events)]

    async def list_cycle_day_events_in_range(
        self, start_key: int, end_key: int
    ) -> list[CycleDayEvent]:
        self._record("list_cycle_day_events_in_range", start_key, end_key)
        return [self.events[k] for k in sorted(self.events) if start_key <= k <= end_key]

    async def upsert_day_event(self, day_key: int, patch: dict[str, bool]) -> CycleDayEvent:
        self._record("upsert_day_event", day_key, dict(patch))
        current = self.events.get(day_key, CycleDayEvent(day_key))
        event = CycleDayEvent(
            day_key,
            is_period=patch.get("is_period", current.is_period),
            is_pregnancy=patch.get("is_pregnancy", current.is_pregnancy),
        )
        self.events[day_key] = event
        return event

    async def delete_day_event(self, day_key: int) -> None:
        self._record("delete_day_event", day_key)
        self.events.pop(day_key, None)

    async def get_cycle_profile(self) -> CycleProfile | None:
        self._record("get_cycle_profile")
        return self.profile

    async def upsert_cycle_profile(
        self, cycle_length_days: int, period_length_days: int
    ) -> CycleProfile:
        self._record("upsert_cycle_profile", cycle_length_days, period_length_days)
        self.profile = CycleProfile(
            cycle_length_days=cycle_length_days,
            period_length_days=period_length_days,
            updated_at=datetime.now(timezone.utc),
        )
        return self.profile


# ---------------------------------------------------------------------------
# Helpers exposed as fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def key() -> Callable[..., int]:
    """Day key for TEST_DATE shifted by ``offset`` days, or for an explicit date."""

    def _key(offset: int = 0, base: date = TEST_DATE) -> int:
        return to_day_key(base + timedelta(days=offset))

    return _key


@pytest.fixture
def period_days(key: Callable[..., int]) -> Callable[..., list[int]]:
    """Day keys for runs given as (offset_from_TEST_DATE, length) pairs."""

    def _days(*runs: tuple[int, int]) -> list[int]:
        return [key(start + i) for start, length in runs for i in range(length)]

    return _days


# ---------------------------------------------------------------------------
# Config / store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_policy() -> CyclePolicy:
    """Load the real bundled policy for tests."""
    return load_cycle_policy()


@pytest.fixture
def store() -> InMemoryCycleStore:
    return InMemoryCycleStore()


@pytest.fixture
def service(store: InMemoryCycleStore, cycle_policy: CyclePolicy) -> CycleService:
    return CycleService(store, cycle_policy)
