"""Exception taxonomy shared by the manager, the executor and the providers.

Driver exceptions never leak out of a provider untranslated; they are
chained onto one of these (``raise QueryError(...) from exc``).
"""

from __future__ import annotations


class SQLHelperError(Exception):
    """Base class for every error raised by sqlhelper."""


class SQLConnectionError(SQLHelperError):
    """A pool could not be created, validated or borrowed from."""


class PoolNotInitializedError(SQLConnectionError):
    """An operation needed a pool but `aconnect()` has not succeeded."""


class QueryError(SQLHelperError):
    """Statement preparation or execution failed."""


class BindingError(SQLHelperError):
    """A parameter index is out of range, unbound, or of the wrong type."""


class ResourceReleaseError(SQLHelperError):
    """Closing a resource failed.

    Only ever logged. Release is best-effort and must not mask the outcome
    of the operation that acquired the resource.
    """


class ResourceClosedError(SQLHelperError):
    """A result handle or cursor was used after it was closed."""
