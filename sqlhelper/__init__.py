"""Pooled connections, ``?``-parameterized queries and failover for a relational datastore.

This module provides:

- `ConnectionManager`: pool lifecycle, health check, failover/failback
- `QueryExecutor`: binds ``?`` placeholders and runs a statement
- `ResultHandle`: rows plus the statement and connection behind them
- `ScopedResourceCloser`: reverse-order release of acquired resources

Usage
-----
::

    manager = (
        ConnectionManager.builder()
        .set_host("db1")
        .set_port(5432)
        .set_database("orders")
        .set_username("app")
        .set_password("secret")
        .build()
    )
    async with manager:
        await manager.query("INSERT INTO orders (sku) VALUES (?)").params("A-1").aexecute()
        async with await manager.query("SELECT sku FROM orders").aresults() as results:
            async for row in results:
                ...
"""

from .builder import ConnectionManagerBuilder
from .closer import ScopedResourceCloser
from .config import POSTGRESQL, DatastoreType, DataSourceProperties, Endpoint, PoolConfig, build_pool_config, format_url
from .core import (
    ActiveTarget,
    BindingError,
    FailoverEvent,
    HealthCheckStatus,
    PoolNotInitializedError,
    QueryError,
    ResourceClosedError,
    ResourceReleaseError,
    SQLConnectionError,
    SQLHelperError,
)
from .health import HealthCheckResult
from .logger import LoggingConfig, configure_logging, get_logger
from .manager import ConnectionManager
from .notify import FailoverNotifier, HttpFailoverNotifier, NotifierConfig, NullFailoverNotifier
from .provider import Connection, Cursor, DataSource, PoolProvider, Statement
from .query import QueryExecutor
from .results import ResultHandle

__all__ = [
    "POSTGRESQL",
    "ActiveTarget",
    "BindingError",
    "Connection",
    "ConnectionManager",
    "ConnectionManagerBuilder",
    "Cursor",
    "DataSource",
    "DataSourceProperties",
    "DatastoreType",
    "Endpoint",
    "FailoverEvent",
    "FailoverNotifier",
    "HealthCheckResult",
    "HealthCheckStatus",
    "HttpFailoverNotifier",
    "LoggingConfig",
    "NotifierConfig",
    "NullFailoverNotifier",
    "PoolConfig",
    "PoolNotInitializedError",
    "PoolProvider",
    "QueryError",
    "QueryExecutor",
    "ResourceClosedError",
    "ResourceReleaseError",
    "ResultHandle",
    "SQLConnectionError",
    "SQLHelperError",
    "ScopedResourceCloser",
    "Statement",
    "build_pool_config",
    "configure_logging",
    "format_url",
    "get_logger",
]
