"""Local Postgres connection pool.

The pool is created once at startup and handed to the stores that need it;
nothing reads it from module state except the health probe.
"""

from __future__ import annotations

import logging

import asyncpg

from skintrack.config import Settings, get_settings

logger = logging.getLogger("skintrack.db")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS cycle_events (
    entry_date   BIGINT PRIMARY KEY,
    is_period    BOOLEAN NOT NULL DEFAULT FALSE,
    is_pregnancy BOOLEAN NOT NULL DEFAULT FALSE,
    CONSTRAINT cycle_events_single_flag CHECK (NOT (is_period AND is_pregnancy))
);

CREATE TABLE IF NOT EXISTS cycle_profiles (
    profile_id    SMALLINT PRIMARY KEY DEFAULT 1 CHECK (profile_id = 1),
    cycle_length  INTEGER NOT NULL,
    period_length INTEGER NOT NULL,
    updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT cycle_profiles_period_within_cycle CHECK (period_length <= cycle_length)
);
"""

# Module-level pool — initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool and make sure the schema exists."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    async with _pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized — call init_pool() first")
    return _pool
