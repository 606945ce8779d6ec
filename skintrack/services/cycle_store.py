"""Postgres implementation of the ``CycleStore`` port.

Day keys are stored as-is in ``cycle_events.entry_date`` (BIGINT epoch
millis of local midnight); existing history depends on that exact value.

``atomic()`` opens a transaction on a dedicated connection and binds it to
the current task through a context variable, so every store call made inside
the block joins the same transaction.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncGenerator

import asyncpg

from skintrack.cycle.ports import CycleDayEvent, CycleProfile

logger = logging.getLogger("skintrack.db.cycle_store")

_EVENT_COLUMNS = "entry_date, is_period, is_pregnancy"


def _event(row: asyncpg.Record) -> CycleDayEvent:
    return CycleDayEvent(
        day_key=int(row["entry_date"]),
        is_period=bool(row["is_period"]),
        is_pregnancy=bool(row["is_pregnancy"]),
    )


def _profile(row: asyncpg.Record) -> CycleProfile:
    return CycleProfile(
        cycle_length_days=int(row["cycle_length"]),
        period_length_days=int(row["period_length"]),
        updated_at=row["updated_at"],
    )


class PostgresCycleStore:
    """Cycle history and profile stored in the local Postgres database."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool
        self._conn: ContextVar[asyncpg.Connection | None] = ContextVar(
            f"cycle_store_conn_{id(self)}", default=None
        )

    @asynccontextmanager
    async def _connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        bound = self._conn.get()
        if bound is not None:
            yield bound
            return
        async with self._pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def atomic(self) -> AsyncGenerator[None, None]:
        if self._conn.get() is not None:
            # Already inside a transaction; join it
            yield
            return
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                token = self._conn.set(conn)
                try:
                    yield
                finally:
                    self._conn.reset(token)

    # ------------------------------------------------------------------
    # Day events
    # ------------------------------------------------------------------

    async def list_all_cycle_day_events(self) -> list[CycleDayEvent]:
        async with self._connection() as conn:
            rows = await conn.fetch(
                f"SELECT {_EVENT_COLUMNS} FROM cycle_events ORDER BY entry_date"
            )
        return [_event(r) for r in rows]

    async def list_cycle_day_events_in_range(
        self, start_key: int, end_key: int
    ) -> list[CycleDayEvent]:
        async with self._connection() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_EVENT_COLUMNS} FROM cycle_events
                WHERE entry_date >= $1 AND entry_date <= $2
                ORDER BY entry_date
                """,
                start_key, end_key,
            )
        return [_event(r) for r in rows]

    async def upsert_day_event(self, day_key: int, patch: dict[str, bool]) -> CycleDayEvent:
        unknown = set(patch) - {"is_period", "is_pregnancy"}
        if unknown:
            raise ValueError(f"Unknown cycle event fields: {sorted(unknown)}")

        columns = ["entry_date", *patch.keys()]
        placeholders = [f"${i}" for i in range(1, len(columns) + 1)]
        updates = [f"{key} = EXCLUDED.{key}" for key in patch] or ["entry_date = EXCLUDED.entry_date"]

        async with self._connection() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO cycle_events ({', '.join(columns)})
                VALUES ({', '.join(placeholders)})
                ON CONFLICT (entry_date) DO UPDATE SET {', '.join(updates)}
                RETURNING {_EVENT_COLUMNS}
                """,
                day_key, *patch.values(),
            )
        logger.debug("Upserted cycle event %d %s", day_key, patch)
        return _event(row)

    async def delete_day_event(self, day_key: int) -> None:
        async with self._connection() as conn:
            await conn.execute("DELETE FROM cycle_events WHERE entry_date = $1", day_key)
        logger.debug("Deleted cycle event %d", day_key)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_cycle_profile(self) -> CycleProfile | None:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                "SELECT cycle_length, period_length, updated_at FROM cycle_profiles "
                "WHERE profile_id = 1"
            )
        return _profile(row) if row else None

    async def upsert_cycle_profile(
        self, cycle_length_days: int, period_length_days: int
    ) -> CycleProfile:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO cycle_profiles (profile_id, cycle_length, period_length, updated_at)
                VALUES (1, $1, $2, NOW())
                ON CONFLICT (profile_id) DO UPDATE SET
                    cycle_length = EXCLUDED.cycle_length,
                    period_length = EXCLUDED.period_length,
                    updated_at = NOW()
                RETURNING cycle_length, period_length, updated_at
                """,
                cycle_length_days, period_length_days,
            )
        return _profile(row)
