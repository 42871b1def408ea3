"""Interfaces between the helper and the pool/driver underneath it.

A `PoolProvider` opens a `DataSource` (one pool bound to one URL and one
credential pair). Everything borrowed from it is released with
``await resource.aclose()``:

- `Connection.aclose()` hands the connection back to its pool
- `Statement.aclose()` drops the prepared statement
- `Cursor.aclose()` ends the cursor and whatever transaction it needed

Providers translate driver failures into `sqlhelper.core.exceptions` types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from .config import PoolConfig


@runtime_checkable
class Cursor(Protocol):
    """Forward-only, non-restartable async row stream."""

    def __aiter__(self) -> AsyncIterator[Any]: ...

    async def __anext__(self) -> Any: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class Statement(Protocol):
    async def aexecute(self, parameters: Sequence[object]) -> str:
        """Run as an update/DDL statement and return the driver's status line."""
        ...

    async def aquery(self, parameters: Sequence[object], *, prefetch: int) -> Cursor:
        """Run as a row-producing query and return an open cursor."""
        ...

    async def aclose(self) -> None: ...


@runtime_checkable
class Connection(Protocol):
    def is_closed(self) -> bool: ...

    async def ais_valid(self, timeout: float) -> bool:
        """Liveness probe bounded by ``timeout`` seconds."""
        ...

    async def aprepare(self, sql: str) -> Statement:
        """Prepare ``sql``, which uses ``?`` positional placeholders."""
        ...

    async def aclose(self) -> None: ...


@runtime_checkable
class DataSource(Protocol):
    """One open pool."""

    def is_closed(self) -> bool: ...

    async def aacquire(self) -> Connection:
        """Borrow a connection. Raises `SQLConnectionError` if the pool refuses."""
        ...

    async def aclose(self) -> None: ...

    def get_size(self) -> int: ...

    def get_idle_size(self) -> int: ...

    def get_max_size(self) -> int: ...


@runtime_checkable
class PoolProvider(Protocol):
    async def acreate(self, config: PoolConfig) -> DataSource:
        """Open a pool. Raises `SQLConnectionError` if it cannot be established."""
        ...
