from __future__ import annotations

import platform

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotifierConfig(BaseSettings):
    """Where failover notices go, read from ``SQLHELPER_NOTIFIER_*`` variables.

    Leaving ``url`` unset disables delivery.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SQLHELPER_NOTIFIER_",
        extra="ignore",
        frozen=True,
    )

    url: str | None = Field(default=None)
    token: SecretStr = Field(default=SecretStr(""))
    system_name: str = Field(default_factory=lambda: platform.node())
    timeout: float = Field(default=5.0, gt=0.0, le=60.0)

    @property
    def enabled(self) -> bool:
        return bool(self.url)
