from __future__ import annotations

from typing import TYPE_CHECKING, Self

from .config import POSTGRESQL, DatastoreType, Endpoint

if TYPE_CHECKING:
    from .manager import ConnectionManager
    from .notify import FailoverNotifier
    from .provider import PoolProvider


class ConnectionManagerBuilder:
    """Assembles a `ConnectionManager` one setting at a time.

    Unset endpoint fields stay empty strings.

    Examples
    --------
    >>> manager = (
    ...     ConnectionManager.builder()
    ...     .set_host("db1")
    ...     .set_port(5432)
    ...     .set_database("orders")
    ...     .set_username("u")
    ...     .set_password("p")
    ...     .build()
    ... )
    """

    def __init__(self) -> None:
        self._host: str | None = None
        self._port: str | int | None = None
        self._database: str | None = None
        self._username: str | None = None
        self._password: str | None = None
        self._provider: PoolProvider | None = None
        self._notifier: FailoverNotifier | None = None
        self._datastore: DatastoreType = POSTGRESQL
        self._liveness_timeout = 1.0

    def set_host(self, host: str | None) -> Self:
        self._host = host
        return self

    def set_port(self, port: str | int | None) -> Self:
        self._port = port
        return self

    def set_database(self, database: str | None) -> Self:
        self._database = database
        return self

    def set_username(self, username: str | None) -> Self:
        self._username = username
        return self

    def set_password(self, password: str | None) -> Self:
        self._password = password
        return self

    def set_provider(self, provider: PoolProvider) -> Self:
        self._provider = provider
        return self

    def set_notifier(self, notifier: FailoverNotifier) -> Self:
        self._notifier = notifier
        return self

    def set_datastore(self, datastore: DatastoreType) -> Self:
        self._datastore = datastore
        return self

    def set_liveness_timeout(self, seconds: float) -> Self:
        self._liveness_timeout = seconds
        return self

    def endpoint(self) -> Endpoint:
        return Endpoint(
            host=self._host,
            port=self._port,
            database=self._database,
            username=self._username,
            password=self._password,
        )

    def build(self) -> ConnectionManager:
        from .manager import ConnectionManager

        return ConnectionManager(
            self.endpoint(),
            provider=self._provider,
            notifier=self._notifier,
            datastore=self._datastore,
            liveness_timeout=self._liveness_timeout,
        )
