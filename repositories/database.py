# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 14 SEP 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
Singleton pattern ensures one pool per application.

Connection settings come from DATABASE_URL or the individual POSTGRES_*
variables (local dev).

Usage:
    from repositories.database import get_pool

    pool = await get_pool()
    async with pool.connection() as conn:
        result = await conn.execute("SELECT 1")
"""

import os
import logging
from typing import Optional
from contextlib import asynccontextmanager

from psycopg import AsyncConnection, sql
from psycopg_pool import AsyncConnectionPool

from core.config import get_defaults

logger = logging.getLogger(__name__)

# Global pool instance
_pool: Optional[AsyncConnectionPool] = None


def get_connection_string() -> str:
    """
    Get database connection string from environment.

    Priority:
    1. DATABASE_URL environment variable
    2. Individual POSTGRES_* components

    Returns:
        PostgreSQL connection string
    """
    if url := os.environ.get("DATABASE_URL"):
        return url

    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "postgres")
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "prefer")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def mask_conninfo(conninfo: str) -> str:
    """Strip credentials from a connection string for logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        head, _, tail = conninfo.partition("password=")
        rest = tail.split(" ", 1)
        return head + "password=***" + (" " + rest[1] if len(rest) > 1 else "")
    return conninfo


async def init_pool(
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Initialize the global connection pool.

    Args:
        min_size: Minimum connections to maintain (defaults to POOL_MIN_SIZE)
        max_size: Maximum connections allowed (defaults to POOL_MAX_SIZE)
        connection_string: Override connection string (defaults to env)

    Returns:
        AsyncConnectionPool instance
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    db_defaults = get_defaults().database
    min_size = min_size if min_size is not None else db_defaults.pool_min_size
    max_size = max_size if max_size is not None else db_defaults.pool_max_size

    conninfo = connection_string or get_connection_string()
    logger.info(f"Initializing connection pool: {mask_conninfo(conninfo)}")

    _pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        open=False,  # opened explicitly below
    )

    await _pool.open()
    logger.info(f"Connection pool opened (min={min_size}, max={max_size})")

    return _pool


async def get_pool() -> AsyncConnectionPool:
    """
    Get the global connection pool, initializing if needed.
    """
    global _pool

    if _pool is None:
        await init_pool()

    return _pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Connection pool closed")


@asynccontextmanager
async def use_connection(pool: AsyncConnectionPool, conn: Optional[AsyncConnection] = None):
    """
    Yield the caller's connection, or borrow one from the pool.

    Repositories accept an optional connection so services can run several
    repository calls inside one transaction:

        async with pool.connection() as conn, conn.transaction():
            await version_repo.get(version_id, conn=conn, lock="update")
            await point_repo.count(version_id, conn=conn)
    """
    if conn is not None:
        yield conn
        return
    async with pool.connection() as pooled:
        yield pooled


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = get_defaults().database.schema

# Table identifiers; use with psycopg sql.SQL().format() for injection-safe queries
TABLE_DATASETS = sql.Identifier(SCHEMA, "datasets")
TABLE_DATASET_VERSIONS = sql.Identifier(SCHEMA, "dataset_versions")
TABLE_IRRADIANCE_POINTS = sql.Identifier(SCHEMA, "irradiance_points")
TABLE_COORDINATE_CACHE = sql.Identifier(SCHEMA, "coordinate_cache")
