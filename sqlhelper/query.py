"""Parameterized statements with ``?`` positional placeholders."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from .closer import ScopedResourceCloser
from .core.exceptions import BindingError, PoolNotInitializedError, QueryError, SQLHelperError
from .logger import get_logger
from .placeholders import count_placeholders
from .results import ResultHandle

if TYPE_CHECKING:
    from .manager import ConnectionManager
    from .provider import Connection

logger = get_logger(__name__)

_UNBOUND = object()


class QueryExecutor:
    """One SQL statement bound to the manager that will run it.

    Creating an executor does no I/O. Parameters are bound by 1-based
    position, left to right over the ``?`` placeholders.

    Examples
    --------
    >>> await manager.query("UPDATE users SET name = ? WHERE id = ?").params("Alice", 7).aexecute()
    'UPDATE 1'
    >>> query = manager.query("SELECT * FROM users WHERE id = ?").bind(1, 7)
    >>> async with await query.aresults() as results:
    ...     row = await results.afetchone()
    """

    __slots__ = ("_manager", "_parameters", "_sql")

    def __init__(self, sql: str, manager: ConnectionManager) -> None:
        self._sql = sql
        self._manager = manager
        self._parameters: list[object] = [_UNBOUND] * count_placeholders(sql)

    def __repr__(self) -> str:
        return f"QueryExecutor(sql={self._sql!r}, placeholders={len(self._parameters)})"

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def placeholder_count(self) -> int:
        return len(self._parameters)

    @property
    def parameters(self) -> tuple[object, ...]:
        """Bound values in placeholder order.

        Raises
        ------
        BindingError
            If any placeholder has no value yet.
        """
        missing = [i + 1 for i, value in enumerate(self._parameters) if value is _UNBOUND]
        if missing:
            msg = f"No value bound for parameter(s) {missing} of {self._sql!r}"
            raise BindingError(msg)
        return tuple(self._parameters)

    def bind(self, index: int, value: object) -> Self:
        if not 1 <= index <= len(self._parameters):
            msg = f"Parameter index {index} out of range; statement has {len(self._parameters)} placeholder(s)"
            raise BindingError(msg)
        self._parameters[index - 1] = value
        return self

    def params(self, *values: object) -> Self:
        """Bind ``values`` to placeholders 1..len(values)."""
        if len(values) > len(self._parameters):
            msg = f"{len(values)} value(s) given; statement has {len(self._parameters)} placeholder(s)"
            raise BindingError(msg)
        for index, value in enumerate(values, start=1):
            self.bind(index, value)
        return self

    async def aexecute(self) -> str:
        """Run as an update/DDL statement.

        Connection and statement are released before returning, whether the
        statement succeeded or not.

        Returns
        -------
        str
            The driver's command status (e.g. ``"INSERT 0 1"``).

        Raises
        ------
        SQLConnectionError
            If no connection could be borrowed.
        BindingError
            If a placeholder is unbound or a value cannot be encoded.
        QueryError
            If preparation or execution fails.
        """
        parameters = self.parameters
        async with ScopedResourceCloser() as closer:
            connection = closer.acquire(await self._aborrow())
            try:
                statement = closer.acquire(await connection.aprepare(self._sql))
                status = await statement.aexecute(parameters)
            except SQLHelperError:
                raise
            except Exception as e:
                raise QueryError(f"Statement failed: {e}") from e

        logger.debug("Statement executed", status=status)
        return status

    async def aresults(self, *, prefetch: int = 50) -> ResultHandle:
        """Run as a row-producing query and hand back the open result.

        The caller owns the returned handle and must close it. If anything
        fails before the handle exists, whatever was acquired is released.

        Parameters
        ----------
        prefetch
            Rows fetched per round trip while iterating.

        Raises
        ------
        SQLConnectionError
            If no connection could be borrowed.
        BindingError
            If a placeholder is unbound or a value cannot be encoded.
        QueryError
            If preparation or execution fails.
        """
        parameters = self.parameters
        async with ScopedResourceCloser() as closer:
            connection = closer.acquire(await self._aborrow())
            try:
                statement = closer.acquire(await connection.aprepare(self._sql))
                cursor = closer.acquire(await statement.aquery(parameters, prefetch=prefetch))
            except SQLHelperError:
                raise
            except Exception as e:
                raise QueryError(f"Query failed: {e}") from e

            handle = ResultHandle(connection, statement, cursor)
            closer.pop_all()

        return handle

    async def _aborrow(self) -> Connection:
        connection = await self._manager.aget_connection()
        if connection is None:
            msg = "Not connected. Call aconnect() first."
            raise PoolNotInitializedError(msg)
        return connection
