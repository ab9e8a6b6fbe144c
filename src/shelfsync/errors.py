"""Exception types raised by the sync layer."""

from __future__ import annotations

from typing import Optional


class ShelfSyncError(Exception):
    """Base class for all errors raised by shelfsync."""


class RemoteError(ShelfSyncError):
    """The remote service answered with an error or could not be used."""

    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(RemoteError):
    """The remote service has no such record (HTTP 404)."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class UnreachableError(RemoteError):
    """The request never got an HTTP response (connect error, timeout, ...)."""


class LocalStoreError(ShelfSyncError):
    """The local fallback storage is unavailable or corrupt."""


class InvalidStateError(ShelfSyncError):
    """Session start/end issued in the wrong state for that item."""


class InvalidTimestampError(ShelfSyncError, ValueError):
    """A remote timestamp could not be parsed."""
