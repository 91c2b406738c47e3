"""asyncpg connection pool for the project store."""

from __future__ import annotations

import logging

import asyncpg

from api_dashboard.config import settings

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


class DatabaseNotConfigured(RuntimeError):
    """No DATABASE_URL is configured for the project store."""


def is_configured() -> bool:
    return bool(settings.DATABASE_URL)


async def get_pool() -> asyncpg.Pool:
    """Return the shared pool, creating it on first use.

    Raises:
        DatabaseNotConfigured: If DATABASE_URL is empty.
    """
    global _pool
    if _pool is None:
        if not is_configured():
            raise DatabaseNotConfigured("DATABASE_URL is not set")
        _pool = await asyncpg.create_pool(settings.DATABASE_URL, min_size=1, max_size=5)
        logger.info("Project store pool created")
    return _pool


async def close_pool() -> None:
    """Close the shared pool if it was created."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
