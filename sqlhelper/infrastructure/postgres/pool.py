"""Pool provider backed by asyncpg.

Maps the datasource properties onto `asyncpg.create_pool()`:

- ``maximumPoolSize`` / ``minimumIdle`` -> ``max_size`` / ``min_size``
- ``prepStmtCacheSize`` -> ``statement_cache_size`` (0 when
  ``cachePrepStmts`` or ``useServerPrepStmts`` is off)
- ``prepStmtCacheSqlLimit`` -> ``max_cacheable_statement_size``
- ``connectionTimeout`` (ms) -> connect and acquire timeout
- anything else -> ``server_settings``
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import asyncpg
from asyncpg.exceptions import InterfaceError, PostgresError

from ...core.exceptions import SQLConnectionError
from ...logger import get_logger
from .connection import AsyncpgConnection

if TYPE_CHECKING:
    from asyncpg import Pool, Record

    from ...config import PoolConfig

logger = get_logger(__name__)

DRIVER = "asyncpg"

_CONNECT_ERRORS = (PostgresError, InterfaceError, OSError, ValueError)


def to_pool_params(config: PoolConfig) -> dict[str, Any]:
    """Convert a pool config to `asyncpg.create_pool()` keyword arguments."""
    props = config.properties
    max_size = props.maximum_pool_size
    password = config.password.get_secret_value()
    return {
        "dsn": config.url,
        "user": config.username or None,
        "password": password or None,
        "min_size": min(props.minimum_idle, max_size),
        "max_size": max_size,
        "timeout": props.connection_timeout_s,
        "statement_cache_size": props.prep_stmt_cache_size if props.statement_cache_enabled else 0,
        "max_cacheable_statement_size": props.prep_stmt_cache_sql_limit,
        "server_settings": props.extras or None,
    }


class AsyncpgDataSource:
    """One open asyncpg pool."""

    __slots__ = ("_acquire_timeout", "_pool", "_url")

    def __init__(self, pool: Pool[Record], *, url: str, acquire_timeout: float) -> None:
        self._pool = pool
        self._url = url
        self._acquire_timeout = acquire_timeout

    def __repr__(self) -> str:
        return f"AsyncpgDataSource(url={self._url!r}, size={self.get_size()}, max_size={self.get_max_size()})"

    @property
    def pool(self) -> Pool[Record]:
        return self._pool

    def is_closed(self) -> bool:
        return self._pool.is_closing()

    async def aacquire(self) -> AsyncpgConnection:
        try:
            connection = await self._pool.acquire(timeout=self._acquire_timeout)
        except (*_CONNECT_ERRORS, TimeoutError) as e:
            msg = f"Could not borrow a connection from {self._url}: {e!r}"
            raise SQLConnectionError(msg) from e
        return AsyncpgConnection(connection, self._pool)

    async def aclose(self) -> None:
        """Close gracefully, terminating if borrowed connections are not returned in time."""
        if self._pool.is_closing():
            return
        try:
            await asyncio.wait_for(self._pool.close(), timeout=self._acquire_timeout)
        except TimeoutError:
            logger.warning("Pool close timed out, terminating", url=self._url)
            self._pool.terminate()

    def get_size(self) -> int:
        return self._pool.get_size()

    def get_idle_size(self) -> int:
        return self._pool.get_idle_size()

    def get_max_size(self) -> int:
        return self._pool.get_max_size()


class AsyncpgPoolProvider:
    """Opens asyncpg pools and validates them with one round trip."""

    driver = DRIVER

    async def acreate(self, config: PoolConfig) -> AsyncpgDataSource:
        if config.driver != self.driver:
            msg = f"Driver {config.driver!r} is not supported by {type(self).__name__} (expected {self.driver!r})"
            raise SQLConnectionError(msg)

        params = to_pool_params(config)
        try:
            pool = await asyncpg.create_pool(**params)
        except (*_CONNECT_ERRORS, TimeoutError) as e:
            msg = f"Could not open pool for {config.url}: {e!r}"
            raise SQLConnectionError(msg) from e

        data_source = AsyncpgDataSource(
            pool,
            url=config.url,
            acquire_timeout=config.properties.connection_timeout_s,
        )

        try:
            async with pool.acquire(timeout=config.properties.connection_timeout_s) as conn:
                await conn.execute("SELECT 1")
        except (*_CONNECT_ERRORS, TimeoutError) as e:
            pool.terminate()
            msg = f"Pool for {config.url} failed validation: {e!r}"
            raise SQLConnectionError(msg) from e

        logger.info(
            "asyncpg pool opened",
            url=config.url,
            min_size=params["min_size"],
            max_size=params["max_size"],
            statement_cache_size=params["statement_cache_size"],
        )
        return data_source
