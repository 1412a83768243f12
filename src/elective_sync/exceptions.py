# SPDX-License-Identifier: MIT
"""Exceptions raised across the Record Store and cache boundaries."""


class RecordStoreError(Exception):
    """Base class for all Record Store failures.

    Mirrors the ``{code, message}`` error shape returned by the hosted
    database so views can show the message as-is.
    """

    def __init__(
        self, message: str, code: str | None = None, table: str | None = None
    ) -> None:
        self.message = message
        self.code = code
        self.table = table
        super().__init__(message)

    def to_dict(self) -> dict[str, str | None]:
        """Return the error in the Record Store's ``{code, message}`` form."""
        return {"code": self.code, "message": self.message}


class FetchFailedError(RecordStoreError):
    """Raised when a Record Store read is rejected or cannot be completed."""

    pass


class RecordStoreTimeoutError(FetchFailedError):
    """Raised when a Record Store read does not complete within its timeout."""

    def __init__(
        self,
        message: str = "Record Store request timed out",
        timeout: float | None = None,
        table: str | None = None,
    ) -> None:
        self.timeout = timeout
        msg = f"{message} after {timeout}s" if timeout else message
        super().__init__(msg, code="timeout", table=table)


class MutationFailedError(RecordStoreError):
    """Raised when a Record Store insert, update or delete is rejected."""

    pass


class CacheMediumError(Exception):
    """Raised by storage media when a read or write fails.

    Never escapes :class:`~elective_sync.cache.LocalCache`; it exists so
    storage implementations have a single type to signal quota or
    corruption problems.
    """

    pass
