"""SQLite implementation of the Database protocol.

Thin wrapper around aiosqlite.Connection. The connection runs in
autocommit mode; only ``INSERT IGNORE`` needs translating.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import aiosqlite

from sqlrecord.decoder import Column
from sqlrecord.errors import ConnectError, ExecError, ScanError

if TYPE_CHECKING:
    from sqlrecord.db.backend import Cursor, Row

logger = logging.getLogger(__name__)

_INSERT_IGNORE_RE = re.compile(r"^\s*INSERT\s+IGNORE\s+INTO\b", re.IGNORECASE)


def _translate_insert_ignore(sql: str) -> str:
    """Convert ``INSERT IGNORE INTO`` to SQLite's ``INSERT OR IGNORE INTO``."""
    return _INSERT_IGNORE_RE.sub("INSERT OR IGNORE INTO", sql, count=1)


class SQLiteCursor:
    """Wraps aiosqlite.Cursor to satisfy the Cursor protocol.

    SQLite does not report declared types for result columns, so every
    column is described without a type name.
    """

    def __init__(self, cursor: aiosqlite.Cursor) -> None:
        """Initialize with an aiosqlite cursor."""
        self._cursor = cursor

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        rc = self._cursor.rowcount
        return rc if rc is not None else -1

    @property
    def lastrowid(self) -> int | None:
        """Rowid of the last inserted row."""
        return self._cursor.lastrowid

    @property
    def columns(self) -> list[Column]:
        """Result column names; SQLite reports no declared types."""
        description = self._cursor.description or ()
        return [Column(name=desc[0]) for desc in description]

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        try:
            return await self._cursor.fetchone()
        except (sqlite3.Error, ValueError) as exc:
            raise ScanError(str(exc)) from exc

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        try:
            return list(await self._cursor.fetchall())
        except (sqlite3.Error, ValueError) as exc:
            raise ScanError(str(exc)) from exc

    async def close(self) -> None:
        """Close the underlying cursor."""
        await self._cursor.close()


class SQLiteBackend:
    """SQLite implementation of the Database protocol.

    Pool tuning options do not apply: the backend owns a single aiosqlite
    connection, which serializes work on its own thread.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        """Initialize with an aiosqlite connection."""
        self._conn = conn

    @classmethod
    async def create(cls, path: str) -> SQLiteBackend:
        """Open a SQLite database in autocommit mode."""
        try:
            conn = await aiosqlite.connect(path, isolation_level=None)
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys=ON")
        except (sqlite3.Error, OSError) as exc:
            raise ConnectError(f"cannot open sqlite database {path!r}: {exc}") from exc
        return cls(conn)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        sqlite_sql = _translate_insert_ignore(sql)
        logger.debug("sqlite execute: %s", sqlite_sql)
        try:
            cursor = await self._conn.execute(sqlite_sql, tuple(params))
        except sqlite3.Error as exc:
            raise ExecError(str(exc)) from exc
        return SQLiteCursor(cursor)

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()
