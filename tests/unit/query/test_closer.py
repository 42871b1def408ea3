"""ScopedResourceCloser tests."""

from __future__ import annotations

import asyncio

import pytest
from rich.console import Console

from sqlhelper import ScopedResourceCloser

console = Console()


class Resource:
    def __init__(self, name: str, log: list[str], *, fail: bool = False, cancel: bool = False) -> None:
        self.name = name
        self._log = log
        self._fail = fail
        self._cancel = cancel

    async def aclose(self) -> None:
        self._log.append(self.name)
        if self._cancel:
            raise asyncio.CancelledError
        if self._fail:
            raise RuntimeError(f"{self.name} refused to close")


class SyncResource:
    def __init__(self, log: list[str]) -> None:
        self._log = log

    def close(self) -> None:
        self._log.append("sync")


class TestScopedResourceCloser:
    """Test reverse-order, failure-isolated release."""

    async def test_acquire_returns_resource_unchanged(self) -> None:
        log: list[str] = []
        resource = Resource("a", log)

        async with ScopedResourceCloser() as closer:
            assert closer.acquire(resource) is resource

    async def test_releases_in_reverse_order(self) -> None:
        """Resources are released last-acquired first."""
        console.print("[bold blue]Testing reverse release order[/bold blue]")

        log: list[str] = []
        async with ScopedResourceCloser() as closer:
            for name in ("connection", "statement", "cursor"):
                closer.acquire(Resource(name, log))
            assert log == []

        assert log == ["cursor", "statement", "connection"]
        console.print("[green]✓ Released in reverse order[/green]")

    async def test_releases_when_scope_raises(self) -> None:
        """A failing body still releases everything and the original error propagates."""
        log: list[str] = []

        with pytest.raises(ValueError, match="boom"):
            async with ScopedResourceCloser() as closer:
                closer.acquire(Resource("connection", log))
                closer.acquire(Resource("statement", log))
                raise ValueError("boom")

        assert log == ["statement", "connection"]

    async def test_close_failure_is_isolated(self) -> None:
        """One resource failing to close does not stop the others."""
        console.print("[bold blue]Testing isolated close failures[/bold blue]")

        log: list[str] = []
        async with ScopedResourceCloser() as closer:
            closer.acquire(Resource("connection", log))
            closer.acquire(Resource("statement", log, fail=True))
            closer.acquire(Resource("cursor", log, fail=True))

        assert log == ["cursor", "statement", "connection"]
        console.print("[green]✓ Close failures swallowed, all released[/green]")

    async def test_close_failure_does_not_mask_body_error(self) -> None:
        log: list[str] = []

        with pytest.raises(KeyError):
            async with ScopedResourceCloser() as closer:
                closer.acquire(Resource("connection", log, fail=True))
                raise KeyError("original")

        assert log == ["connection"]

    async def test_sync_close_is_supported(self) -> None:
        log: list[str] = []
        async with ScopedResourceCloser() as closer:
            closer.acquire(SyncResource(log))

        assert log == ["sync"]

    async def test_resource_without_close_is_logged_not_raised(self) -> None:
        async with ScopedResourceCloser() as closer:
            closer.acquire(object())

    async def test_pop_all_transfers_ownership(self) -> None:
        """Popped resources are not released on scope exit."""
        log: list[str] = []
        async with ScopedResourceCloser() as closer:
            first = closer.acquire(Resource("connection", log))
            second = closer.acquire(Resource("statement", log))
            owned = closer.pop_all()
            assert len(closer) == 0

        assert owned == [first, second]
        assert log == []

    async def test_aclose_is_idempotent(self) -> None:
        log: list[str] = []
        closer = ScopedResourceCloser()
        closer.acquire(Resource("connection", log))

        await closer.aclose()
        await closer.aclose()

        assert log == ["connection"]

    async def test_cancellation_releases_remaining_then_propagates(self) -> None:
        """A cancelled release does not strand the resources acquired before it."""
        console.print("[bold blue]Testing cancellation during release[/bold blue]")

        log: list[str] = []
        closer = ScopedResourceCloser()
        closer.acquire(Resource("connection", log))
        closer.acquire(Resource("statement", log))
        closer.acquire(Resource("cursor", log, cancel=True))

        with pytest.raises(asyncio.CancelledError):
            await closer.aclose()

        assert log == ["cursor", "statement", "connection"]
        assert len(closer) == 0
        console.print("[yellow]✓ All released before cancellation surfaced[/yellow]")
