from __future__ import annotations

from enum import StrEnum


class HealthCheckStatus(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISCONNECTED = "disconnected"


class ActiveTarget(StrEnum):
    """Which server the manager currently routes statements to."""

    DISCONNECTED = "disconnected"
    PRIMARY = "primary"
    SECONDARY = "secondary"


class FailoverEvent(StrEnum):
    FAILOVER = "failover"
    FAILBACK = "failback"

    @property
    def description(self) -> str:
        if self is FailoverEvent.FAILOVER:
            return "Failover to secondary server"
        return "Failback to primary server"
