"""Cycle records and the persistence port the engine is written against.

The engine never talks to a database directly.  It is handed an object that
satisfies ``CycleStore``: the Postgres adapter in production
(``skintrack.services.cycle_store``) or an in-memory double in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import AsyncContextManager, Protocol, runtime_checkable

from skintrack.cycle.config_loader import CyclePolicy, get_cycle_policy


@dataclass(frozen=True)
class CycleDayEvent:
    """Recorded state of one calendar day.

    A day with both flags false is never stored; ``is_period`` and
    ``is_pregnancy`` are never both true.
    """

    day_key: int
    is_period: bool = False
    is_pregnancy: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.is_period or self.is_pregnancy)


@dataclass(frozen=True)
class CycleProfile:
    """User-configured cycle parameters (one per dataset)."""

    cycle_length_days: int
    period_length_days: int
    updated_at: datetime | None = None


class CycleProfileError(ValueError):
    """Raised when a cycle profile is inconsistent or out of range."""


def validate_profile(
    cycle_length_days: int,
    period_length_days: int,
    policy: CyclePolicy | None = None,
) -> None:
    """Check profile values before they reach storage.

    Raises:
        CycleProfileError: Period longer than cycle, or either value outside
            its configurable range.  Every problem is reported.
    """
    policy = policy or get_cycle_policy()
    errors: list[str] = []
    if period_length_days > cycle_length_days:
        errors.append(
            f"period length ({period_length_days}) cannot exceed "
            f"cycle length ({cycle_length_days})"
        )
    if not policy.cycle_length.contains(cycle_length_days):
        errors.append(
            f"cycle length must be between {policy.cycle_length.min_days} and "
            f"{policy.cycle_length.max_days} days, got {cycle_length_days}"
        )
    if not policy.period_length.contains(period_length_days):
        errors.append(
            f"period length must be between {policy.period_length.min_days} and "
            f"{policy.period_length.max_days} days, got {period_length_days}"
        )
    if errors:
        raise CycleProfileError("; ".join(errors))


@runtime_checkable
class CycleStore(Protocol):
    """Persistence operations the cycle engine needs.

    Implementations propagate their own I/O errors unchanged; the engine
    does not retry.
    """

    async def list_all_cycle_day_events(self) -> list[CycleDayEvent]:
        """Every stored day, ordered by day key ascending."""
        ...

    async def list_cycle_day_events_in_range(
        self, start_key: int, end_key: int
    ) -> list[CycleDayEvent]:
        """Stored days with ``start_key <= day_key <= end_key``, ascending."""
        ...

    async def upsert_day_event(self, day_key: int, patch: dict[str, bool]) -> CycleDayEvent:
        """Create or update a day.  Missing flags default to False on create."""
        ...

    async def delete_day_event(self, day_key: int) -> None:
        ...

    async def get_cycle_profile(self) -> CycleProfile | None:
        ...

    async def upsert_cycle_profile(
        self, cycle_length_days: int, period_length_days: int
    ) -> CycleProfile:
        ...

    def atomic(self) -> AsyncContextManager[None]:
        """Transaction boundary: writes inside commit together or not at all."""
        ...
