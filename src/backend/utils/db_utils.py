"""asyncpg helpers for the PostgreSQL thread store.

Pool lifecycle (create, health check, drain on shutdown), a transaction
context manager with a bounded acquire, and a retry decorator for reads.
"""

from __future__ import annotations

import asyncio
import functools
import random

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import asyncpg

from core.exceptions import DatabaseError
from models.error_models import ErrorCode
from utils.logger import logger
from utils.metrics import db_pool_connections

P = ParamSpec("P")
T = TypeVar("T")

#: Failures worth another attempt: the server or pool, not the query
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
)


class ConnectionPoolExhausted(DatabaseError):
    """No connection could be created or acquired in time."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message=message, code=ErrorCode.DATABASE_CONNECTION_FAILED, cause=cause)


async def create_database_pool(
    dsn: str,
    *,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
    connection_timeout: float = 10.0,
) -> asyncpg.Pool:
    """Open the pool, bounding the initial connect by ``connection_timeout``.

    Raises:
        ConnectionPoolExhausted: If the database cannot be reached
    """
    statement_timeout_ms = int(command_timeout * 1000)

    async def init_connection(conn: asyncpg.Connection) -> None:
        await conn.execute(f"SET statement_timeout = '{statement_timeout_ms}'")

    pool_coro = asyncpg.create_pool(
        dsn=dsn,
        min_size=min_size,
        max_size=max_size,
        command_timeout=command_timeout,
        init=init_connection,
    )
    try:
        pool = await asyncio.wait_for(pool_coro, timeout=connection_timeout)
    except asyncio.TimeoutError as e:
        raise ConnectionPoolExhausted(f"Database did not answer within {connection_timeout}s", e) from e
    except (OSError, asyncpg.PostgresError) as e:
        raise ConnectionPoolExhausted(f"Could not open database pool: {e}", e) from e

    if pool is None:
        raise ConnectionPoolExhausted("Could not open database pool")
    logger.info(f"Database pool opened (min={min_size}, max={max_size})")
    return pool


@asynccontextmanager
async def acquire_connection(
    pool: asyncpg.Pool,
    *,
    timeout: float | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """``pool.acquire()`` that reports a timeout as ConnectionPoolExhausted."""
    try:
        async with pool.acquire(timeout=timeout) as conn:
            yield conn
    except asyncio.TimeoutError as e:
        raise ConnectionPoolExhausted(f"No free database connection within {timeout}s", e) from e


@asynccontextmanager
async def transaction(
    pool: asyncpg.Pool,
    *,
    timeout: float | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Run the block inside one transaction.

    Example:
        async with transaction(pool) as conn:
            await conn.execute("INSERT INTO threads ...")
            await conn.execute("INSERT INTO thread_messages ...")
    """
    async with acquire_connection(pool, timeout=timeout) as conn, conn.transaction():
        yield conn


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    retryable_exceptions: tuple[type[Exception], ...] = (*TRANSIENT_ERRORS, ConnectionPoolExhausted),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry a read on transient failures with jittered exponential backoff.

    Never wrap appends with this: a retried insert could store a message twice.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt >= max_attempts:
                        logger.error(f"{func.__name__} failed after {max_attempts} attempts: {e}", exc_info=True)
                        raise
                    delay = min(base_delay * 2 ** (attempt - 1) + random.uniform(0, 0.5), max_delay)
                    logger.warning(f"{func.__name__} attempt {attempt}/{max_attempts} failed, retry in {delay:.2f}s: {e}")
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator


async def check_pool_health(pool: asyncpg.Pool) -> dict[str, Any]:
    """``SELECT 1`` plus pool occupancy, also exported as gauges."""
    try:
        async with acquire_connection(pool, timeout=5.0) as conn:
            healthy = await conn.fetchval("SELECT 1") == 1
    except (ConnectionPoolExhausted, OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.warning(f"Database health check failed: {e}")
        healthy = False

    size = pool.get_size()
    free = pool.get_idle_size()
    db_pool_connections.labels(state="free").set(free)
    db_pool_connections.labels(state="used").set(size - free)
    return {"healthy": healthy, "pool_size": size, "pool_free": free, "pool_used": size - free}


async def graceful_pool_close(pool: asyncpg.Pool, timeout: float = 10.0) -> None:
    """Give in-flight queries up to ``timeout`` seconds, then close."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while pool.get_size() > pool.get_idle_size():
        if loop.time() > deadline:
            logger.warning(f"Closing database pool with {pool.get_size() - pool.get_idle_size()} connections busy")
            break
        await asyncio.sleep(0.1)
    await pool.close()


__all__ = [
    "ConnectionPoolExhausted",
    "acquire_connection",
    "check_pool_health",
    "create_database_pool",
    "graceful_pool_close",
    "transaction",
    "with_retry",
]
