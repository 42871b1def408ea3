"""Pool lifecycle and primary/secondary failover for one endpoint.

State machine of the active target
----------------------------------
::

    DISCONNECTED --aconnect()--> PRIMARY
    PRIMARY --afailover() [secondary registered]--> SECONDARY
    SECONDARY --afailback()--> PRIMARY
    any --adisconnect()--> DISCONNECTED

`afailover()` without a registered secondary, and `afailback()` outside
SECONDARY, are silent no-ops. A failed `aconnect()` leaves the manager
DISCONNECTED with no pool.

Statements borrow from the pool of the active target. A lock guards the pool
handles and the selector; borrowing itself does not hold it.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Self

from .closer import arelease
from .config import POSTGRESQL, DatastoreType, Endpoint, build_pool_config
from .core.enums import ActiveTarget, FailoverEvent
from .core.exceptions import SQLConnectionError
from .health import HealthCheckResult
from .logger import get_logger
from .notify import NullFailoverNotifier
from .query import QueryExecutor

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from .builder import ConnectionManagerBuilder
    from .config import PoolConfig
    from .notify import FailoverNotifier
    from .provider import Connection, DataSource, PoolProvider
    from .results import ResultHandle

logger = get_logger(__name__)


def _default_provider() -> PoolProvider:
    from .infrastructure.postgres import AsyncpgPoolProvider

    return AsyncpgPoolProvider()


class ConnectionManager:
    """Owns the primary pool, an optional secondary pool and the active target.

    Examples
    --------
    >>> manager = ConnectionManager(Endpoint(host="db1", port=5432, database="orders", username="u", password="p"))
    >>> await manager.aconnect()
    >>> async with await manager.query("SELECT 1").aresults() as results:
    ...     row = await results.afetchone()
    >>> await manager.adisconnect()
    """

    __slots__ = (
        "_active",
        "_datastore",
        "_endpoint",
        "_lock",
        "_liveness_timeout",
        "_notifier",
        "_primary",
        "_provider",
        "_secondary",
        "_secondary_endpoint",
    )

    def __init__(
        self,
        endpoint: Endpoint | None = None,
        *,
        provider: PoolProvider | None = None,
        notifier: FailoverNotifier | None = None,
        datastore: DatastoreType = POSTGRESQL,
        liveness_timeout: float = 1.0,
    ) -> None:
        self._endpoint = endpoint if endpoint is not None else Endpoint()
        self._provider = provider if provider is not None else _default_provider()
        self._notifier = notifier if notifier is not None else NullFailoverNotifier()
        self._datastore = datastore
        self._liveness_timeout = liveness_timeout

        self._primary: DataSource | None = None
        self._secondary: DataSource | None = None
        self._secondary_endpoint: Endpoint | None = None
        self._active = ActiveTarget.DISCONNECTED
        self._lock = asyncio.Lock()

    @classmethod
    def builder(cls) -> ConnectionManagerBuilder:
        from .builder import ConnectionManagerBuilder

        return ConnectionManagerBuilder()

    async def __aenter__(self) -> Self:
        await self.aconnect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and exc_val is not None:
            logger.error(
                "ConnectionManager context exiting with exception",
                exc_type=exc_type.__name__,
                exc_val=str(exc_val),
            )
        await self.adisconnect()

    def __repr__(self) -> str:
        return f"ConnectionManager(url={self.url!r}, active_target={self._active.value!r})"

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def datastore(self) -> DatastoreType:
        return self._datastore

    @property
    def url(self) -> str:
        return self._endpoint.url(self._datastore)

    @property
    def active_target(self) -> ActiveTarget:
        return self._active

    @property
    def has_secondary(self) -> bool:
        return self._secondary is not None

    @property
    def data_source(self) -> DataSource | None:
        """Pool of the active target, or None when disconnected."""
        if self._active is ActiveTarget.SECONDARY:
            return self._secondary
        if self._active is ActiveTarget.PRIMARY:
            return self._primary
        return None

    async def aconnect(self, options: Mapping[Any, Any] | None = None) -> None:
        """Open the primary pool.

        Parameters
        ----------
        options
            Pool options layered over the defaults (``maximumPoolSize=20``,
            ``cachePrepStmts=true``, ``prepStmtCacheSize=250``,
            ``prepStmtCacheSqlLimit=2048``, ``useServerPrepStmts=true``).

        Raises
        ------
        SQLConnectionError
            If the pool cannot be established. The manager is then
            disconnected with no primary pool.
        """
        config = build_pool_config(self._endpoint, self._datastore, options)

        async with self._lock:
            previous, self._primary = self._primary, None
            if previous is not None:
                logger.info("Replacing existing pool", url=self.url)
                await arelease(previous)

            try:
                self._primary = await self._aopen(config)
            except SQLConnectionError:
                self._active = ActiveTarget.DISCONNECTED
                logger.error("Connection failed", url=self.url)
                raise

            if self._active is not ActiveTarget.SECONDARY:
                self._active = ActiveTarget.PRIMARY

        logger.info("Connected", url=self.url, active_target=str(self._active))

    async def adisconnect(self) -> None:
        """Close every pool this manager holds. Safe to call repeatedly.

        Raises
        ------
        SQLConnectionError
            If a pool fails to close. Both pools are attempted first.
        """
        async with self._lock:
            pools = [pool for pool in (self._primary, self._secondary) if pool is not None]
            self._primary = None
            self._secondary = None
            self._secondary_endpoint = None
            self._active = ActiveTarget.DISCONNECTED

            errors: list[Exception] = []
            for pool in pools:
                try:
                    await pool.aclose()
                except Exception as e:
                    errors.append(e)

        if errors:
            msg = f"Failed to close {len(errors)} pool(s): {errors[0]!r}"
            raise SQLConnectionError(msg) from errors[0]
        if pools:
            logger.info("Disconnected", url=self.url, pools_closed=len(pools))

    async def ais_connected(self) -> bool:
        """Best-effort liveness check of the active pool; never raises."""
        data_source = self.data_source
        if data_source is None or data_source.is_closed():
            return False

        connection: Connection | None = None
        try:
            connection = await data_source.aacquire()
            return not connection.is_closed() and await connection.ais_valid(self._liveness_timeout)
        except Exception as e:
            logger.debug("Liveness check failed", error=str(e))
            return False
        finally:
            if connection is not None:
                await arelease(connection)

    async def aget_connection(self) -> Connection | None:
        """Borrow a connection from the active pool.

        The caller owns it and returns it with ``await connection.aclose()``.

        Returns
        -------
        Connection | None
            None when there is no pool.

        Raises
        ------
        SQLConnectionError
            If the pool refuses the borrow (exhausted, closed).
        """
        data_source = self.data_source
        if data_source is None:
            return None
        return await data_source.aacquire()

    def query(self, sql: str) -> QueryExecutor:
        return QueryExecutor(sql, self)

    async def aexecute(self, sql: str, *params: object) -> str:
        """Shorthand for ``query(sql).params(*params).aexecute()``."""
        return await self.query(sql).params(*params).aexecute()

    async def aresults(self, sql: str, *params: object) -> ResultHandle:
        """Shorthand for ``query(sql).params(*params).aresults()``."""
        return await self.query(sql).params(*params).aresults()

    async def aregister_secondary(self, endpoint: Endpoint) -> None:
        """Open a pool on ``endpoint`` as the failover candidate, without activating it.

        Raises
        ------
        SQLConnectionError
            If the secondary pool cannot be established.
        """
        config = build_pool_config(endpoint, self._datastore)
        data_source = await self._aopen(config)

        async with self._lock:
            previous, self._secondary = self._secondary, data_source
            self._secondary_endpoint = endpoint

        if previous is not None:
            await arelease(previous)
        logger.info("Secondary registered", url=endpoint.url(self._datastore))

    async def afailover(self) -> None:
        """Route statements to the secondary. No-op without one."""
        async with self._lock:
            if self._secondary is None or self._active is not ActiveTarget.PRIMARY:
                logger.debug("Failover skipped", active_target=str(self._active), has_secondary=self.has_secondary)
                return

            await self._anotify(FailoverEvent.FAILOVER)
            self._active = ActiveTarget.SECONDARY

        logger.warning("Failed over to secondary", url=self._secondary_url())

    async def afailback(self) -> None:
        """Route statements to the primary again.

        The primary pool is re-opened from the endpoint when it is missing or
        closed, rather than reusing a stale handle.

        Raises
        ------
        SQLConnectionError
            If the primary pool has to be re-opened and cannot be. The manager
            stays on the secondary.
        """
        async with self._lock:
            if self._active is not ActiveTarget.SECONDARY:
                logger.debug("Failback skipped", active_target=str(self._active))
                return

            if self._primary is None or self._primary.is_closed():
                self._primary = await self._aopen(build_pool_config(self._endpoint, self._datastore))

            await self._anotify(FailoverEvent.FAILBACK)
            self._active = ActiveTarget.PRIMARY

        logger.warning("Failed back to primary", url=self.url)

    async def ahealth_check(self) -> HealthCheckResult:
        data_source = self.data_source
        if data_source is None:
            return HealthCheckResult.disconnected(has_secondary=self.has_secondary)

        start = time.perf_counter()
        healthy = await self.ais_connected()
        latency_s = time.perf_counter() - start

        if not healthy:
            return HealthCheckResult.unhealthy(
                self._active,
                data_source.get_max_size(),
                "Liveness probe failed",
                has_secondary=self.has_secondary,
            )
        return HealthCheckResult.healthy(
            self._active,
            pool_size=data_source.get_size(),
            pool_max_size=data_source.get_max_size(),
            pool_idle_size=data_source.get_idle_size(),
            latency_s=latency_s,
            has_secondary=self.has_secondary,
        )

    async def _aopen(self, config: PoolConfig) -> DataSource:
        try:
            return await self._provider.acreate(config)
        except SQLConnectionError:
            raise
        except Exception as e:
            msg = f"Could not open pool for {config.url}: {e!r}"
            raise SQLConnectionError(msg) from e

    async def _anotify(self, event: FailoverEvent) -> None:
        message = f"({self._datastore.name}) {event.description}"
        try:
            await self._notifier.anotify(event, message)
        except Exception as e:
            logger.warning("Failover notifier raised", failover_event=str(event), error=str(e))

    def _secondary_url(self) -> str | None:
        if self._secondary_endpoint is None:
            return None
        return self._secondary_endpoint.url(self._datastore)
