"""PostgreSQL pool provider built on asyncpg.

Usage
-----
::

    manager = ConnectionManager(endpoint, provider=AsyncpgPoolProvider())
    async with manager:
        await manager.aexecute("INSERT INTO users (name) VALUES (?)", "Alice")

`AsyncpgPoolProvider` is also the default provider of `ConnectionManager`.
"""

from .connection import AsyncpgConnection, AsyncpgCursor, AsyncpgStatement
from .pool import DRIVER, AsyncpgDataSource, AsyncpgPoolProvider, to_pool_params

__all__ = [
    "DRIVER",
    "AsyncpgConnection",
    "AsyncpgCursor",
    "AsyncpgDataSource",
    "AsyncpgPoolProvider",
    "AsyncpgStatement",
    "to_pool_params",
]
