from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from .closer import arelease_all
from .core.exceptions import ResourceClosedError
from .logger import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from .provider import Connection, Cursor, Statement

logger = get_logger(__name__)


class ResultHandle:
    """Rows of one query together with the statement and connection behind them.

    The three are one unit of ownership: the cursor is only valid while the
    handle is open, and `aclose()` releases cursor, statement and connection
    in that order. Close it exactly once, preferably with ``async with``.

    Examples
    --------
    >>> async with await manager.query("SELECT id FROM users WHERE age > ?").params(30).aresults() as results:
    ...     async for row in results:
    ...         print(row[0])
    """

    __slots__ = ("_closed", "_connection", "_cursor", "_statement")

    def __init__(self, connection: Connection, statement: Statement, cursor: Cursor) -> None:
        self._connection = connection
        self._statement = statement
        self._cursor = cursor
        self._closed = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def __aiter__(self) -> Self:
        self._ensure_open()
        return self

    async def __anext__(self) -> Any:
        self._ensure_open()
        return await self._cursor.__anext__()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def statement(self) -> Statement:
        return self._statement

    @property
    def cursor(self) -> Cursor:
        self._ensure_open()
        return self._cursor

    async def afetchone(self) -> Any | None:
        """Next row, or None once the cursor is exhausted."""
        try:
            return await self.__anext__()
        except StopAsyncIteration:
            return None

    async def afetchall(self) -> list[Any]:
        """Every remaining row."""
        return [row async for row in self]

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True

        await arelease_all((self._cursor, self._statement, self._connection))
        logger.debug("Result handle closed")

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "Result handle is closed; its rows are no longer available."
            raise ResourceClosedError(msg)
