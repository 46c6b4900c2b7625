"""PostgreSQL implementation of the Database protocol.

Uses asyncpg for async access. All application SQL uses ``?``
placeholders and ``INSERT IGNORE``; this backend translates them to
``$N`` and ``ON CONFLICT DO NOTHING`` at execute time.

The placeholder rewrite is textual: every ``?`` becomes a parameter,
including one inside a string literal or the jsonb ``?`` operator. Use
``jsonb_exists()`` and bind literal question marks as parameters.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import asyncpg

from sqlrecord.decoder import Column
from sqlrecord.errors import ConnectError, ExecError

if TYPE_CHECKING:
    from sqlrecord.db.backend import Cursor, Row

logger = logging.getLogger(__name__)

# Pre-compiled regex for placeholder translation
_PLACEHOLDER_RE = re.compile(r"\?")
_INSERT_IGNORE_RE = re.compile(r"^\s*INSERT\s+IGNORE\s+INTO\b", re.IGNORECASE)

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _translate_placeholders(sql: str) -> str:
    """Convert ``?`` placeholders to ``$1, $2, ...`` for asyncpg."""
    counter = 0

    def _replace(_match: re.Match[str]) -> str:
        nonlocal counter
        counter += 1
        return f"${counter}"

    return _PLACEHOLDER_RE.sub(_replace, sql)


def _translate_insert_ignore(sql: str) -> str:
    """Convert ``INSERT IGNORE INTO ...`` to ``INSERT INTO ... ON CONFLICT DO NOTHING``."""
    if not _INSERT_IGNORE_RE.match(sql):
        return sql
    body = _INSERT_IGNORE_RE.sub("INSERT INTO", sql, count=1).rstrip().rstrip(";")
    return f"{body} ON CONFLICT DO NOTHING"


def _translate(sql: str) -> str:
    return _translate_placeholders(_translate_insert_ignore(sql))


class PostgresRow:
    """Wraps asyncpg.Record to satisfy the Row protocol."""

    def __init__(self, record: asyncpg.Record) -> None:
        """Initialize with an asyncpg Record."""
        self._record = record

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        return self._record[key]

    def __len__(self) -> int:
        return len(self._record)

    def keys(self) -> list[str]:
        """Return column names."""
        return list(self._record.keys())


class PostgresCursor:
    """Wraps a list of asyncpg.Record as a Cursor.

    asyncpg returns results eagerly; there's no server-side cursor for
    simple queries. This wraps the result list to match the Cursor protocol.
    Postgres has no last-insert-id; use ``RETURNING`` through ``finds``.
    """

    def __init__(
        self,
        rows: list[asyncpg.Record],
        status: str | None = None,
        columns: list[Column] | None = None,
    ) -> None:
        """Initialize with result rows, optional status string and column metadata."""
        self._rows = rows
        self._index = 0
        self._rowcount = self._parse_rowcount(status)
        self._columns = columns or []

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        return self._rowcount

    @property
    def lastrowid(self) -> int | None:
        """Always None for Postgres."""
        return None

    @property
    def columns(self) -> list[Column]:
        """Result column names and Postgres type names."""
        return self._columns

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        if self._index >= len(self._rows):
            return None
        row = PostgresRow(self._rows[self._index])
        self._index += 1
        return row

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        remaining: list[Row] = [PostgresRow(r) for r in self._rows[self._index :]]
        self._index = len(self._rows)
        return remaining

    async def close(self) -> None:
        """Drop buffered rows."""
        self._rows = []
        self._index = 0

    @staticmethod
    def _parse_rowcount(status: str | None) -> int:
        """Parse affected row count from asyncpg status string.

        Examples: "INSERT 0 1" → 1, "UPDATE 3" → 3, "DELETE 0" → 0.
        """
        if not status:
            return -1
        parts = status.split()
        if len(parts) >= 2:
            try:
                return int(parts[-1])
            except ValueError:
                pass
        return -1


class PostgresBackend:
    """PostgreSQL implementation of the Database protocol.

    Each ``execute()`` call acquires a connection from the pool, translates
    the statement, and releases the connection after. asyncpg auto-commits
    each statement.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        """Initialize with an asyncpg connection pool."""
        self._pool = pool

    @classmethod
    async def create(
        cls,
        url: str,
        *,
        max_conns: int,
        max_lifetime: float = 0.0,
        host: str | None = None,
        port: int | None = None,
    ) -> PostgresBackend:
        """Create a PostgresBackend from a connection URL.

        ``host``/``port`` override the URL's endpoint (used for tunnelling).
        """
        overrides: dict[str, Any] = {}
        if host is not None:
            overrides["host"] = host
        if port is not None:
            overrides["port"] = port
        try:
            pool = await asyncpg.create_pool(
                url,
                min_size=min(2, max_conns),
                max_size=max_conns,
                max_inactive_connection_lifetime=max_lifetime,
                **overrides,
            )
        except _DRIVER_ERRORS as exc:
            raise ConnectError(f"cannot connect to postgres: {exc}") from exc
        return cls(pool)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        pg_sql = _translate(sql)
        logger.debug("postgres execute: %s", pg_sql)
        try:
            async with self._pool.acquire() as conn:
                stmt = await conn.prepare(pg_sql)
                attributes = stmt.get_attributes()
                if attributes:
                    # Query returns rows
                    rows = await stmt.fetch(*params)
                    columns = [Column(name=a.name, type_name=a.type.name) for a in attributes]
                    return PostgresCursor(rows, status=stmt.get_statusmsg(), columns=columns)
                # DML returns a status string
                status = await conn.execute(pg_sql, *params)
                return PostgresCursor([], status=status)
        except _DRIVER_ERRORS as exc:
            raise ExecError(str(exc)) from exc

    async def close(self) -> None:
        """Close the connection pool."""
        await self._pool.close()
