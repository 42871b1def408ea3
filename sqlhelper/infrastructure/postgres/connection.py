"""asyncpg-backed connection, statement and cursor.

SQL arrives with ``?`` placeholders and is rewritten to asyncpg's ``$n``
style at prepare time. asyncpg errors are translated here:

- a value the driver cannot encode for its parameter -> `BindingError`
- every other asyncpg or server error, including server-side data
  exceptions such as division by zero -> `QueryError`
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from asyncpg.exceptions import DataError, InterfaceError, PostgresError

from ...core.exceptions import BindingError, QueryError, ResourceClosedError
from ...logger import get_logger
from ...placeholders import parse

if TYPE_CHECKING:
    from collections.abc import Sequence

    from asyncpg import Pool, Record
    from asyncpg.cursor import Cursor as PgCursor
    from asyncpg.pool import PoolConnectionProxy
    from asyncpg.prepared_stmt import PreparedStatement
    from asyncpg.transaction import Transaction

logger = get_logger(__name__)

_DRIVER_ERRORS = (PostgresError, InterfaceError, OSError)
_ENCODER_ERRORS = (TypeError, ValueError, OverflowError)


def _is_argument_error(e: Exception) -> bool:
    """True when a bound value could not be encoded, as opposed to a server-side error."""
    if isinstance(e, DataError):
        # SQLSTATE 22xxx from the server has no cause; encoder failures chain the codec error
        return isinstance(e.__cause__, _ENCODER_ERRORS)
    return isinstance(e, InterfaceError) and isinstance(e, ValueError)


def _translate(e: Exception, action: str) -> Exception:
    if _is_argument_error(e):
        return BindingError(f"Could not bind parameters: {e}")
    return QueryError(f"{action} failed: {e}")


class AsyncpgCursor:
    """Forward-only cursor running inside its own transaction.

    PostgreSQL only keeps a portal open inside a transaction, so the cursor
    owns one and commits it on `aclose()`.
    """

    __slots__ = ("_buffer", "_closed", "_cursor", "_exhausted", "_prefetch", "_transaction")

    def __init__(self, transaction: Transaction, cursor: PgCursor[Record], prefetch: int) -> None:
        self._transaction = transaction
        self._cursor = cursor
        self._prefetch = max(prefetch, 1)
        self._buffer: list[Record] = []
        self._exhausted = False
        self._closed = False

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> Record:
        if self._closed:
            msg = "Cursor is closed."
            raise ResourceClosedError(msg)

        if not self._buffer and not self._exhausted:
            try:
                rows = await self._cursor.fetch(self._prefetch)
            except _DRIVER_ERRORS as e:
                raise _translate(e, "Fetch") from e
            self._buffer = list(reversed(rows))
            self._exhausted = len(rows) < self._prefetch

        if not self._buffer:
            raise StopAsyncIteration
        return self._buffer.pop()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer = []
        await self._transaction.commit()


class AsyncpgStatement:
    __slots__ = ("_closed", "_connection", "_prepared")

    def __init__(self, connection: PoolConnectionProxy[Record], prepared: PreparedStatement[Record]) -> None:
        self._connection = connection
        self._prepared = prepared
        self._closed = False

    async def aexecute(self, parameters: Sequence[object]) -> str:
        try:
            await self._prepared.fetch(*parameters)
        except _DRIVER_ERRORS as e:
            raise _translate(e, "Statement") from e
        return self._prepared.get_statusmsg()

    async def aquery(self, parameters: Sequence[object], *, prefetch: int) -> AsyncpgCursor:
        transaction = self._connection.transaction()
        await transaction.start()
        try:
            cursor = await self._prepared.cursor(*parameters)
        except _DRIVER_ERRORS as e:
            await transaction.rollback()
            raise _translate(e, "Query") from e
        return AsyncpgCursor(transaction, cursor, prefetch)

    async def aclose(self) -> None:
        # The connection's statement cache owns the server-side statement.
        self._closed = True


class AsyncpgConnection:
    """A connection borrowed from an asyncpg pool; `aclose()` returns it."""

    __slots__ = ("_connection", "_pool", "_released")

    def __init__(self, connection: PoolConnectionProxy[Record], pool: Pool[Record]) -> None:
        self._connection = connection
        self._pool = pool
        self._released = False

    @property
    def raw(self) -> PoolConnectionProxy[Record]:
        return self._connection

    def is_closed(self) -> bool:
        return self._released or self._connection.is_closed()

    async def ais_valid(self, timeout: float) -> bool:
        if self.is_closed():
            return False
        try:
            return await self._connection.fetchval("SELECT 1", timeout=timeout) == 1
        except (*_DRIVER_ERRORS, TimeoutError) as e:
            logger.debug("Liveness probe failed", error=str(e))
            return False

    async def aprepare(self, sql: str) -> AsyncpgStatement:
        if self._released:
            msg = "Connection was already returned to the pool."
            raise ResourceClosedError(msg)
        try:
            prepared = await self._connection.prepare(parse(sql).numbered)
        except _DRIVER_ERRORS as e:
            raise _translate(e, "Prepare") from e
        return AsyncpgStatement(self._connection, prepared)

    async def aclose(self) -> None:
        if self._released:
            return
        self._released = True
        await self._pool.release(self._connection)
