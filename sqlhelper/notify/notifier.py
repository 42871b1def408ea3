"""Fire-and-forget notices about failover and failback.

Delivery is best-effort: a notifier logs its own failures and never raises
into the failover that triggered it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from ..logger import get_logger
from .config import NotifierConfig

if TYPE_CHECKING:
    from ..core.enums import FailoverEvent

logger = get_logger(__name__)


@runtime_checkable
class FailoverNotifier(Protocol):
    async def anotify(self, event: FailoverEvent, message: str) -> None: ...


class NullFailoverNotifier:
    """Discards every notice."""

    async def anotify(self, event: FailoverEvent, message: str) -> None:
        logger.debug("Failover notice discarded", failover_event=str(event))


class HttpFailoverNotifier:
    """POSTs a plain-text notice to an HTTP endpoint with a bearer token.

    Examples
    --------
    >>> notifier = HttpFailoverNotifier(NotifierConfig(url="https://alerts.example.com/hook", token=SecretStr("t")))
    >>> manager = ConnectionManager(endpoint, notifier=notifier)
    """

    __slots__ = ("_client", "_config")

    def __init__(self, config: NotifierConfig | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config if config is not None else NotifierConfig()
        self._client = client

    @property
    def config(self) -> NotifierConfig:
        return self._config

    def format_message(self, message: str) -> str:
        return f"[{self._config.system_name}] {message}"

    async def anotify(self, event: FailoverEvent, message: str) -> None:
        if not self._config.enabled:
            logger.debug("Failover notifier disabled, skipping", failover_event=str(event))
            return

        headers = {
            "Authorization": f"Bearer {self._config.token.get_secret_value()}",
            "Content-Type": "text/plain",
        }
        body = self.format_message(message).encode("utf-8")

        try:
            if self._client is not None:
                response = await self._client.post(self._config.url, content=body, headers=headers)  # type: ignore[arg-type]
            else:
                async with httpx.AsyncClient(timeout=self._config.timeout) as client:
                    response = await client.post(self._config.url, content=body, headers=headers)  # type: ignore[arg-type]
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Failover notice not delivered", failover_event=str(event), error=str(e))
            return

        logger.info("Failover notice delivered", failover_event=str(event), status_code=response.status_code)
