"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — Database connection pool
═══════════════════════════════════════════════════════════════════════════════

asyncpg pool for the onboarding PostgreSQL database. Repositories borrow a
connection per call through ``get_connection()``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg

from onboarding.config import get_settings
from onboarding.exceptions import StorageError

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Module-level pool singleton
# ═══════════════════════════════════════════════════════════════════════════════
_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    """
    Returns the global PostgreSQL pool.

    The pool is created on the first call with the sizes from OnboardingSettings.
    """
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.database_pool_min,
            max_size=settings.database_pool_max,
            command_timeout=60,
        )
        logger.info(
            f"Onboarding DB pool created "
            f"(min={settings.database_pool_min}, max={settings.database_pool_max})"
        )
    return _pool


async def close_pool() -> None:
    """Closes the global pool."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Onboarding DB pool closed")


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    Borrows a connection from the pool and gives it back afterwards.

    Usage::

        from onboarding.database import get_connection

        async with get_connection() as conn:
            row = await conn.fetchrow('SELECT * FROM requests WHERE id = $1', request_id)
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


async def check_connection() -> bool:
    """Checks that PostgreSQL answers (health check)."""
    try:
        async with get_connection() as conn:
            result = await conn.fetchval("SELECT 1")
            return result == 1
    except Exception as e:
        logger.error(f"Onboarding DB health check failed: {e}")
        return False


@asynccontextmanager
async def storage_connection(operation: str) -> AsyncGenerator[asyncpg.Connection, None]:
    """
    Same as ``get_connection()``, but driver and network errors surface as
    ``StorageError`` carrying the failed operation name.
    """
    try:
        async with get_connection() as conn:
            yield conn
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
        raise StorageError(
            f"Database error during {operation}",
            details={"operation": operation},
        ) from exc
