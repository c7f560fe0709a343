"""Error taxonomy shared by the query parser, connectors, dispatcher and index."""

from __future__ import annotations


class LibSearchError(Exception):
    """Base class for all LibSearch errors."""


class InvalidQuery(LibSearchError, ValueError):
    """Raised when query text is blank or carries an impossible filter value."""


class ConnectorError(LibSearchError):
    """Raised by a source connector when a remote call fails.

    Attributes:
        source: Source tag value of the failing connector.
        status_code: HTTP status when the failure came from a response, else None.
    """

    def __init__(self, message: str, *, source: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class SearchError(LibSearchError, RuntimeError):
    """Raised when a federated search cannot run at all."""


class IndexLockError(LibSearchError, RuntimeError):
    """Raised when the local index write lock cannot be acquired.

    Attributes:
        same_process: True when the lock is already held inside this process.
    """

    def __init__(self, message: str, *, same_process: bool = False) -> None:
        super().__init__(message)
        self.same_process = same_process
