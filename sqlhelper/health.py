from __future__ import annotations

from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .core.enums import ActiveTarget, HealthCheckStatus


class HealthCheckResult(BaseModel):
    """Snapshot of the manager's active pool."""

    model_config = ConfigDict(frozen=True)

    status: HealthCheckStatus
    active_target: ActiveTarget
    pool_size: int = 0
    pool_max_size: int = 0
    pool_idle_size: int = 0
    latency_s: float | None = None
    message: str | None = None
    has_secondary: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pool_in_use(self) -> int:
        return self.pool_size - self.pool_idle_size

    @classmethod
    def disconnected(cls, *, has_secondary: bool = False) -> Self:
        return cls(
            status=HealthCheckStatus.DISCONNECTED,
            active_target=ActiveTarget.DISCONNECTED,
            message="Not connected",
            has_secondary=has_secondary,
        )

    @classmethod
    def unhealthy(cls, active_target: ActiveTarget, pool_max_size: int, error: str, *, has_secondary: bool) -> Self:
        return cls(
            status=HealthCheckStatus.UNHEALTHY,
            active_target=active_target,
            pool_max_size=pool_max_size,
            message=error,
            has_secondary=has_secondary,
        )

    @classmethod
    def healthy(
        cls,
        active_target: ActiveTarget,
        *,
        pool_size: int,
        pool_max_size: int,
        pool_idle_size: int,
        latency_s: float,
        has_secondary: bool,
    ) -> Self:
        return cls(
            status=HealthCheckStatus.HEALTHY,
            active_target=active_target,
            pool_size=pool_size,
            pool_max_size=pool_max_size,
            pool_idle_size=pool_idle_size,
            latency_s=latency_s,
            message="Pool is healthy",
            has_secondary=has_secondary,
        )

    def is_healthy(self) -> bool:
        return self.status == HealthCheckStatus.HEALTHY
