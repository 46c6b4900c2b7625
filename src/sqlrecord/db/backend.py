"""Database backend protocol: thin abstraction over async DB drivers.

The client programs against these protocols. Each backend (SQLite,
Postgres, MySQL) provides a concrete implementation. SQL dialect
differences are handled inside the backend, not in the client.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from sqlrecord.decoder import Column


@runtime_checkable
class Row(Protocol):
    """A database row supporting both named and positional access."""

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        ...

    def __len__(self) -> int:
        """Number of values in the row."""
        ...

    def keys(self) -> Any:
        """Return column names."""
        ...


@runtime_checkable
class Cursor(Protocol):
    """Async cursor returned by Database.execute()."""

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation, -1 if unknown."""
        ...

    @property
    def lastrowid(self) -> int | None:
        """Identifier generated by the last INSERT, None if unavailable."""
        ...

    @property
    def columns(self) -> list[Column]:
        """Result column names and declared types (empty for DML)."""
        ...

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        ...

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        ...

    async def close(self) -> None:
        """Release the cursor."""
        ...


@runtime_checkable
class Database(Protocol):
    """Async database backend.

    All application SQL uses ``?`` placeholders and MySQL-flavored
    ``INSERT IGNORE``. Other dialects translate at execute time (``?`` →
    ``$N``, ``INSERT IGNORE`` → ``ON CONFLICT DO NOTHING``, etc.).
    """

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor.

        Driver failures raise ExecError.
        """
        ...

    async def close(self) -> None:
        """Close the connection or pool."""
        ...
