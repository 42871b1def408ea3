"""Reverse-order release of everything acquired inside one scope.

>>> async with ScopedResourceCloser() as closer:
...     conn = closer.acquire(await data_source.aacquire())
...     stmt = closer.acquire(await conn.aprepare("DELETE FROM t WHERE id = ?"))
...     await stmt.aexecute([42])
... # stmt is closed, then conn, even if aexecute() raised
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, Self, TypeVar

from .core.exceptions import ResourceReleaseError
from .logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

logger = get_logger(__name__)

T = TypeVar("T")


async def arelease(resource: Any) -> None:
    """Close one resource, logging instead of raising on failure.

    Supports ``aclose()`` coroutines and ``close()`` methods that may or may
    not return an awaitable.
    """
    try:
        closer = getattr(resource, "aclose", None) or resource.close
        result = closer()
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.warning(
            "Failed to release resource",
            resource=type(resource).__name__,
            exc_info=ResourceReleaseError(str(e) or type(e).__name__),
        )


async def arelease_all(resources: Iterable[Any]) -> None:
    """Release every resource in order.

    A cancellation arriving during one release is held until the rest have
    been released, then re-raised.
    """
    cancelled: asyncio.CancelledError | None = None
    for resource in resources:
        try:
            await arelease(resource)
        except asyncio.CancelledError as e:
            cancelled = e
    if cancelled is not None:
        raise cancelled


class ScopedResourceCloser:
    """Registers resources in acquisition order and releases them in reverse.

    Every exit path (normal, exception, early return) releases everything
    still registered. One resource failing to close never prevents the
    others from being closed, and never replaces the exception that is
    already propagating.
    """

    __slots__ = ("_resources",)

    def __init__(self) -> None:
        self._resources: list[Any] = []

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def acquire(self, resource: T) -> T:
        self._resources.append(resource)
        return resource

    def pop_all(self) -> list[Any]:
        """Hand ownership of every registered resource to the caller."""
        resources, self._resources = self._resources, []
        return resources

    async def aclose(self) -> None:
        resources, self._resources = self._resources, []
        await arelease_all(reversed(resources))

    def __len__(self) -> int:
        return len(self._resources)
