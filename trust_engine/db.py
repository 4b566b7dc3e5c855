"""
Trust Engine - Database Layer

Async PostgreSQL connection pooling via psycopg3 + psycopg_pool.
- Exponential backoff retry on pool initialization
- Pool health state tracking for readiness probes
- asyncpg-like connection wrapper used by the repositories
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional
from urllib.parse import urlparse

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from . import __version__
from .config import get_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pool Health State
# ---------------------------------------------------------------------------


@dataclass
class PoolHealthState:
    """Tracks database pool initialization state for readiness probes."""

    initialized: bool = False
    healthy: bool = False
    last_error: str | None = None
    init_attempts: int = 0


_pool_health = PoolHealthState()
_db_pool: Optional[AsyncConnectionPool] = None

MAX_RETRY_ATTEMPTS = 5
MAX_TOTAL_WAIT_SECONDS = 30.0
BASE_DELAY_SECONDS = 1.0


def get_pool_health() -> PoolHealthState:
    """Return the current pool health state for readiness probes."""
    return _pool_health


def _dsn_host(dsn: str) -> str:
    """Host part of the DSN for logging (never log the password)."""
    try:
        return urlparse(dsn).hostname or "unknown"
    except ValueError:
        return "unknown"


async def init_db_pool() -> None:
    """
    Initialize the async connection pool with exponential backoff.

    Never raises: on failure the health state records the last error and
    callers of get_connection() get a RuntimeError.
    """
    global _db_pool

    if _db_pool is not None:
        return

    settings = get_settings()
    dsn = settings.database_url
    if not dsn:
        logger.warning("DATABASE_URL is not set; skipping DB init")
        _pool_health.last_error = "DATABASE_URL not configured"
        return

    app_name = "trust_engine_v" + __version__.replace(".", "_")
    start_time = time.monotonic()
    last_error: Exception | None = None

    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        _pool_health.init_attempts = attempt
        elapsed = time.monotonic() - start_time
        if elapsed >= MAX_TOTAL_WAIT_SECONDS:
            logger.error("DB pool init: time budget exhausted (%.1fs)", elapsed)
            break

        try:
            logger.info(
                "DB pool init: attempt %d/%d host=%s",
                attempt,
                MAX_RETRY_ATTEMPTS,
                _dsn_host(dsn),
            )
            pool = AsyncConnectionPool(
                dsn,
                min_size=settings.DB_POOL_MIN_SIZE,
                max_size=settings.DB_POOL_MAX_SIZE,
                kwargs={"application_name": app_name},
                open=False,
            )
            await pool.open(wait=True, timeout=10.0)

            _db_pool = pool
            _pool_health.initialized = True
            _pool_health.healthy = True
            _pool_health.last_error = None
            logger.info("Database pool initialized (attempt %d)", attempt)
            return

        except Exception as e:
            last_error = e
            _pool_health.last_error = f"{type(e).__name__}: {str(e)[:200]}"
            _pool_health.healthy = False
            logger.warning("DB pool init attempt %d failed: %s: %s", attempt, type(e).__name__, e)

            if attempt < MAX_RETRY_ATTEMPTS:
                delay = BASE_DELAY_SECONDS * (2 ** (attempt - 1))
                jitter = random.uniform(0, delay * 0.3)
                await asyncio.sleep(min(delay + jitter, max(MAX_TOTAL_WAIT_SECONDS - elapsed, 0)))

    logger.error(
        "Failed to initialize database pool after %d attempts: %s",
        MAX_RETRY_ATTEMPTS,
        last_error,
    )


async def close_db_pool() -> None:
    """Close the connection pool and reset health state."""
    global _db_pool
    if _db_pool is not None:
        logger.info("Closing PostgreSQL connection pool")
        await _db_pool.close()
        _db_pool = None
        _pool_health.initialized = False
        _pool_health.healthy = False


async def get_pool() -> Optional[AsyncConnectionPool]:
    """Return the async connection pool, initializing it on first use."""
    if _db_pool is None:
        await init_db_pool()
    return _db_pool


@asynccontextmanager
async def get_connection() -> AsyncGenerator["AsyncConnectionWrapper", None]:
    """
    Get a database connection for use in a context manager.

        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT ... WHERE id = %s", some_id)

    The connection runs in autocommit mode unless a transaction() block
    is opened on it.
    """
    pool = await get_pool()
    if pool is None:
        raise RuntimeError("Database connection pool is not initialized")

    async with pool.connection() as conn:
        await conn.set_autocommit(True)
        yield AsyncConnectionWrapper(conn)


class AsyncConnectionWrapper:
    """
    Wrapper around psycopg.AsyncConnection with an asyncpg-like interface.

    Provides fetch(), fetchrow(), fetchval() and execute().
    """

    def __init__(self, conn: psycopg.AsyncConnection):
        self._conn = conn

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        """Fetch all rows as a list of dicts."""
        async with self._conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, args or None)
            rows = await cur.fetchall()
            return list(rows) if rows else []

    async def fetchrow(self, query: str, *args: Any) -> Optional[dict[str, Any]]:
        """Fetch a single row as a dict."""
        async with self._conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, args or None)
            row = await cur.fetchone()
            return dict(row) if row else None

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Fetch a single value."""
        async with self._conn.cursor() as cur:
            await cur.execute(query, args or None)
            row = await cur.fetchone()
            return row[0] if row else None

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a query without returning results."""
        async with self._conn.cursor() as cur:
            await cur.execute(query, args or None)
            return cur.statusmessage or ""

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[None, None]:
        """Commit on success, roll back on exception."""
        async with self._conn.transaction():
            yield
