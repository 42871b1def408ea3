"""Shared fixtures for integration tests against a real PostgreSQL.

Provides:
- postgres_container: Session-scoped PostgreSQL container
- endpoint: Endpoint pointing at the container
- manager: Function-scoped, connected ConnectionManager
- orders_table: Name of the table the manager fixture recreates
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import pytest

from sqlhelper import ConnectionManager, Endpoint

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

TEST_ORDERS_TABLE = "test_orders"


class PostgresContainerProtocol(Protocol):
    """Protocol for PostgreSQL container interface."""

    def get_exposed_port(self, port: int) -> int: ...
    def get_container_host_ip(self) -> str: ...
    def start(self) -> PostgresContainerProtocol: ...
    def stop(self) -> None: ...


def pytest_configure(config: pytest.Config) -> None:  # noqa: ARG001
    """Point testcontainers at a Docker socket before any fixture runs."""
    if not os.environ.get("DOCKER_HOST"):
        for socket_path in (Path("/var/run/docker.sock"), Path.home() / ".docker" / "run" / "docker.sock"):
            if socket_path.exists():
                os.environ["DOCKER_HOST"] = f"unix://{socket_path}"
                os.environ["TESTCONTAINERS_DOCKER_SOCKET_OVERRIDE"] = str(socket_path)
                break

    # Ryuk (testcontainers cleanup daemon) has known issues on macOS/Docker Desktop
    if sys.platform == "darwin" and not os.environ.get("TESTCONTAINERS_RYUK_DISABLED"):
        os.environ["TESTCONTAINERS_RYUK_DISABLED"] = "true"


def _is_docker_available() -> bool:
    try:
        from docker import from_env  # type: ignore[import-untyped]
        from docker.errors import DockerException  # type: ignore[import-untyped]
    except ImportError:
        return False

    try:
        from_env().ping()
    except DockerException:
        return False
    return True


@pytest.fixture(scope="session")
def postgres_container() -> Iterator[PostgresContainerProtocol]:
    """Provide session-scoped PostgreSQL container.

    Skips:
        If Docker daemon or testcontainers is not available.
    """
    if not _is_docker_available():
        pytest.skip("Docker daemon not accessible")

    try:
        from testcontainers.postgres import PostgresContainer  # type: ignore[import-untyped]
    except ImportError as e:
        pytest.skip(f"testcontainers not installed: {e}")

    with PostgresContainer(
        "postgres:16-alpine",
        username="test_user",
        password="test_password",
        dbname="test_db",
    ) as container:
        yield container


@pytest.fixture
def endpoint(postgres_container: PostgresContainerProtocol) -> Endpoint:
    return Endpoint(
        host=postgres_container.get_container_host_ip(),
        port=postgres_container.get_exposed_port(5432),
        database="test_db",
        username="test_user",
        password="test_password",
    )


@pytest.fixture
def orders_table() -> str:
    return TEST_ORDERS_TABLE


@pytest.fixture
async def manager(endpoint: Endpoint) -> AsyncIterator[ConnectionManager]:
    """Connected manager with a fresh ``test_orders`` table."""
    manager = ConnectionManager(endpoint)
    await manager.aconnect({"maximumPoolSize": 5})

    await manager.aexecute(f"DROP TABLE IF EXISTS {TEST_ORDERS_TABLE}")
    await manager.aexecute(
        f"CREATE TABLE {TEST_ORDERS_TABLE} (id SERIAL PRIMARY KEY, sku TEXT NOT NULL, quantity INT NOT NULL)"
    )

    try:
        yield manager
    finally:
        await manager.adisconnect()
