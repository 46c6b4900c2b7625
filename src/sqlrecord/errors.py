"""Exception hierarchy for sqlrecord.

Driver exceptions are wrapped at the backend boundary; the original error
is always available as ``__cause__``.
"""

from __future__ import annotations

from typing import Any


class SQLRecordError(Exception):
    """Base class for all sqlrecord errors."""


class ConfigError(SQLRecordError, ValueError):
    """Invalid client options: bad proxy scheme, malformed address, unknown driver."""


class ConnectError(SQLRecordError):
    """Opening or pinging the database failed during client construction."""


class EmptyWhereClauseError(SQLRecordError, ValueError):
    """A WHERE clause was required but blank (guards full-table updates)."""


class DecodeError(SQLRecordError, ValueError):
    """A document or a result value could not be decoded.

    When raised while decoding a result row, ``partial`` holds the columns
    decoded before the failure and ``column`` names the offending column.
    """

    def __init__(
        self,
        message: str,
        *,
        partial: dict[str, Any] | None = None,
        column: str | None = None,
    ) -> None:
        super().__init__(message)
        self.partial = partial if partial is not None else {}
        self.column = column


class ScanError(SQLRecordError):
    """Reading a row from a cursor failed, or the cursor is closed."""


class ExecError(SQLRecordError):
    """The driver rejected a statement, or a result value is unavailable."""


class ClientClosedError(SQLRecordError):
    """The client was used after close()."""
