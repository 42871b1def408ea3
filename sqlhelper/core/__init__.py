"""Core module exports."""

from __future__ import annotations

from .enums import ActiveTarget, FailoverEvent, HealthCheckStatus
from .exceptions import (
    BindingError,
    PoolNotInitializedError,
    QueryError,
    ResourceClosedError,
    ResourceReleaseError,
    SQLConnectionError,
    SQLHelperError,
)

__all__ = [
    "ActiveTarget",
    "BindingError",
    "FailoverEvent",
    "HealthCheckStatus",
    "PoolNotInitializedError",
    "QueryError",
    "ResourceClosedError",
    "ResourceReleaseError",
    "SQLConnectionError",
    "SQLHelperError",
]
