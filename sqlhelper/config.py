"""Endpoint and pool configuration models.

- `Endpoint`: where to connect and as whom
- `DatastoreType`: URL scheme and the driver that speaks it
- `DataSourceProperties`: pool tuning options, with the recommended defaults
- `PoolConfig`: everything a `PoolProvider` needs to open one pool
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_MAXIMUM_POOL_SIZE = 20


def format_url(scheme: str, host: str | None, port: str | int | None, database: str | None) -> str:
    """Format ``<scheme>://<host>:<port>[/<database>]``.

    ``None`` is treated as an empty string. The database segment is only
    present when non-empty and always has exactly one leading slash.

    Examples
    --------
    >>> format_url("postgresql", "db1", "5432", "orders")
    'postgresql://db1:5432/orders'
    >>> format_url("postgresql", "db1", "5432", "")
    'postgresql://db1:5432'
    """
    host = host if host is not None else ""
    port = str(port) if port is not None else ""
    database = database if database is not None else ""

    if database and not database.startswith("/"):
        database = "/" + database

    return f"{scheme}://{host}:{port}{database}"


class DatastoreType(BaseModel):
    """A datastore flavour: the URL scheme and the fixed driver identity."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    scheme: str
    driver: str


POSTGRESQL = DatastoreType(name="POSTGRESQL", scheme="postgresql", driver="asyncpg")


class Endpoint(BaseModel):
    """Connection coordinates and credentials.

    Every field is optional and a missing or ``None`` value becomes the
    empty string, so an endpoint can be assembled piecemeal by a builder.

    Examples
    --------
    >>> endpoint = Endpoint(host="db1", port=5432, database="orders", username="u", password="p")
    >>> endpoint.port
    '5432'
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(default="")
    port: str = Field(default="")
    database: str = Field(default="")
    username: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))

    @field_validator("host", "port", "database", "username", "password", mode="before")
    @classmethod
    def _coerce_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def url(self, datastore: DatastoreType = POSTGRESQL) -> str:
        return format_url(datastore.scheme, self.host, self.port, self.database)

    def for_secondary(self, host: str, port: str | int | None = None) -> Self:
        """Copy this endpoint onto another host, keeping database and credentials.

        Parameters
        ----------
        host
            Hostname of the secondary server.
        port
            Optional port override. Defaults to this endpoint's port.
        """
        return self.model_copy(update={"host": host, "port": str(port) if port is not None else self.port})


class DataSourceProperties(BaseModel):
    """Pool tuning options.

    Recognized keys are accepted under their camelCase names
    (``cachePrepStmts``, ``prepStmtCacheSize``, ...). Values may be strings,
    as they would be when read from a properties file. Unrecognized keys are
    kept and handed to the driver as-is.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    cache_prep_stmts: bool = Field(default=True, alias="cachePrepStmts")
    prep_stmt_cache_size: int = Field(default=250, ge=0, alias="prepStmtCacheSize")
    prep_stmt_cache_sql_limit: int = Field(default=2048, ge=0, alias="prepStmtCacheSqlLimit")
    use_server_prep_stmts: bool = Field(default=True, alias="useServerPrepStmts")
    maximum_pool_size: int = Field(default=DEFAULT_MAXIMUM_POOL_SIZE, ge=1, alias="maximumPoolSize")
    minimum_idle: int = Field(default=1, ge=0, alias="minimumIdle")
    # milliseconds
    connection_timeout: int = Field(default=30_000, ge=250, alias="connectionTimeout")

    @classmethod
    def with_overrides(cls, overrides: Mapping[Any, Any] | None = None) -> Self:
        """Layer caller-supplied options over the defaults."""
        return cls.model_validate({str(key): value for key, value in (overrides or {}).items()})

    @property
    def extras(self) -> dict[str, str]:
        return {key: str(value) for key, value in (self.model_extra or {}).items()}

    @property
    def statement_cache_enabled(self) -> bool:
        return self.cache_prep_stmts and self.use_server_prep_stmts

    @property
    def connection_timeout_s(self) -> float:
        return self.connection_timeout / 1000


class PoolConfig(BaseModel):
    """What a `PoolProvider` needs to open exactly one pool."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str
    username: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))
    driver: str
    properties: DataSourceProperties = Field(default_factory=DataSourceProperties)


def build_pool_config(
    endpoint: Endpoint,
    datastore: DatastoreType = POSTGRESQL,
    overrides: Mapping[Any, Any] | None = None,
) -> PoolConfig:
    return PoolConfig(
        url=endpoint.url(datastore),
        username=endpoint.username,
        password=endpoint.password,
        driver=datastore.driver,
        properties=DataSourceProperties.with_overrides(overrides),
    )
