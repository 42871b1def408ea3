"""In-memory pool provider and notifier doubles for unit tests.

The fakes record every release in a shared event log so tests can assert
release order, and count borrowed connections so tests can assert that
nothing is left outstanding.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import pytest

from sqlhelper import ConnectionManager, Endpoint, SQLConnectionError
from sqlhelper.core.enums import FailoverEvent

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sqlhelper import PoolConfig

_KNOWN_VERBS = ("SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP")


class FakeDriverError(Exception):
    """Stands in for a driver-level syntax or execution error."""


class FakeCursor:
    def __init__(
        self,
        rows: Sequence[tuple[Any, ...]],
        events: list[str],
        *,
        fail_close: bool = False,
        cancel_close: bool = False,
    ) -> None:
        self._rows = iter(rows)
        self._events = events
        self._fail_close = fail_close
        self._cancel_close = cancel_close
        self.closed = False

    def __aiter__(self) -> FakeCursor:
        return self

    async def __anext__(self) -> tuple[Any, ...]:
        if self.closed:
            raise RuntimeError("cursor closed")
        try:
            return next(self._rows)
        except StopIteration:
            raise StopAsyncIteration from None

    async def aclose(self) -> None:
        self._events.append("cursor")
        self.closed = True
        if self._cancel_close:
            raise asyncio.CancelledError
        if self._fail_close:
            raise FakeDriverError("cursor close failed")


class FakeStatement:
    def __init__(self, sql: str, data_source: FakeDataSource) -> None:
        self.sql = sql
        self._data_source = data_source
        self.closed = False
        self.executed_with: list[tuple[object, ...]] = []

    async def aexecute(self, parameters: Sequence[object]) -> str:
        self.executed_with.append(tuple(parameters))
        if self._data_source.fail_execute:
            raise FakeDriverError("execution failed")
        return f"{self.sql.split()[0].upper()} 1"

    async def aquery(self, parameters: Sequence[object], *, prefetch: int) -> FakeCursor:
        self.executed_with.append(tuple(parameters))
        if self._data_source.fail_query:
            raise FakeDriverError("query failed")
        rows = self._data_source.rows.get(self.sql, [])
        return FakeCursor(
            rows,
            self._data_source.events,
            fail_close=self._data_source.fail_cursor_close,
            cancel_close=self._data_source.cancel_cursor_close,
        )

    async def aclose(self) -> None:
        self._data_source.events.append("statement")
        self.closed = True
        if self._data_source.fail_statement_close:
            raise FakeDriverError("statement close failed")


class FakeConnection:
    def __init__(self, data_source: FakeDataSource) -> None:
        self._data_source = data_source
        self.closed = False
        self.valid = True
        self.statements: list[FakeStatement] = []

    def is_closed(self) -> bool:
        return self.closed

    async def ais_valid(self, timeout: float) -> bool:
        self._data_source.probe_timeouts.append(timeout)
        if self._data_source.probe_raises:
            raise FakeDriverError("probe exploded")
        return self.valid and self._data_source.alive

    async def aprepare(self, sql: str) -> FakeStatement:
        if not sql.strip().upper().startswith(_KNOWN_VERBS):
            raise FakeDriverError(f"syntax error at or near {sql.split()[0]!r}")
        statement = FakeStatement(sql, self._data_source)
        self.statements.append(statement)
        return statement

    async def aclose(self) -> None:
        if self.closed:
            return
        self._data_source.events.append("connection")
        self.closed = True
        self._data_source.in_use -= 1


class FakeDataSource:
    def __init__(self, config: PoolConfig) -> None:
        self.config = config
        self.host = urlsplit(config.url).hostname or ""
        self.max_size = config.properties.maximum_pool_size
        self.in_use = 0
        self.closed = False
        self.alive = True
        self.probe_raises = False
        self.fail_execute = False
        self.fail_query = False
        self.fail_cursor_close = False
        self.cancel_cursor_close = False
        self.fail_statement_close = False
        self.fail_close = False
        self.rows: dict[str, list[tuple[Any, ...]]] = {"SELECT 1": [(1,)]}
        self.events: list[str] = []
        self.probe_timeouts: list[float] = []
        self.borrowed: list[FakeConnection] = []

    def is_closed(self) -> bool:
        return self.closed

    async def aacquire(self) -> FakeConnection:
        if self.closed:
            raise SQLConnectionError("pool is closed")
        if self.in_use >= self.max_size:
            raise SQLConnectionError("pool exhausted")
        self.in_use += 1
        connection = FakeConnection(self)
        self.borrowed.append(connection)
        return connection

    async def aclose(self) -> None:
        self.closed = True
        if self.fail_close:
            raise FakeDriverError("close failed")

    def get_size(self) -> int:
        return max(self.in_use, 1)

    def get_idle_size(self) -> int:
        return self.get_size() - self.in_use

    def get_max_size(self) -> int:
        return self.max_size


class FakePoolProvider:
    def __init__(self) -> None:
        self.created: list[FakeDataSource] = []
        self.unreachable_hosts: set[str] = set()
        self.raise_unexpected = False

    async def acreate(self, config: PoolConfig) -> FakeDataSource:
        host = urlsplit(config.url).hostname or ""
        if self.raise_unexpected:
            raise FakeDriverError("driver blew up")
        if host in self.unreachable_hosts:
            raise SQLConnectionError(f"could not reach {host}")
        data_source = FakeDataSource(config)
        self.created.append(data_source)
        return data_source

    def for_host(self, host: str) -> list[FakeDataSource]:
        return [ds for ds in self.created if ds.host == host]


class RecordingNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.notices: list[tuple[FailoverEvent, str]] = []
        self.fail = fail

    async def anotify(self, event: FailoverEvent, message: str) -> None:
        self.notices.append((event, message))
        if self.fail:
            raise RuntimeError("notification endpoint unreachable")


@pytest.fixture
def provider() -> FakePoolProvider:
    return FakePoolProvider()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_notifier() -> Callable[..., RecordingNotifier]:
    return RecordingNotifier


@pytest.fixture
def endpoint() -> Endpoint:
    return Endpoint(host="db1", port="3306", database="orders", username="u", password="p")


@pytest.fixture
def secondary_endpoint(endpoint: Endpoint) -> Endpoint:
    return endpoint.for_secondary("db2")


@pytest.fixture
def manager(endpoint: Endpoint, provider: FakePoolProvider, notifier: RecordingNotifier) -> ConnectionManager:
    return ConnectionManager(endpoint, provider=provider, notifier=notifier)
