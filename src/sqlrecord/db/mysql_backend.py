"""MySQL implementation of the Database protocol.

Uses aiomysql (PyMySQL under the hood). Application SQL already speaks
MySQL; only ``?`` placeholders are translated to PyMySQL's ``%s``.

The rewrite is textual: a ``?`` inside a string literal is also treated as
a placeholder, so bind literal question marks as parameters.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import aiomysql
import pymysql
from pymysql.constants import FIELD_TYPE

from sqlrecord.decoder import Column
from sqlrecord.errors import ConnectError, ExecError

if TYPE_CHECKING:
    from sqlrecord.db.backend import Cursor, Row

logger = logging.getLogger(__name__)

_BINARY_CHARSET = 63

_TYPE_NAMES = {
    FIELD_TYPE.DECIMAL: "DECIMAL",
    FIELD_TYPE.NEWDECIMAL: "DECIMAL",
    FIELD_TYPE.TINY: "TINYINT",
    FIELD_TYPE.SHORT: "SMALLINT",
    FIELD_TYPE.LONG: "INT",
    FIELD_TYPE.INT24: "MEDIUMINT",
    FIELD_TYPE.LONGLONG: "BIGINT",
    FIELD_TYPE.FLOAT: "FLOAT",
    FIELD_TYPE.DOUBLE: "DOUBLE",
    FIELD_TYPE.NULL: "NULL",
    FIELD_TYPE.TIMESTAMP: "TIMESTAMP",
    FIELD_TYPE.DATE: "DATE",
    FIELD_TYPE.NEWDATE: "DATE",
    FIELD_TYPE.TIME: "TIME",
    FIELD_TYPE.DATETIME: "DATETIME",
    FIELD_TYPE.YEAR: "YEAR",
    FIELD_TYPE.BIT: "BIT",
    FIELD_TYPE.JSON: "JSON",
    FIELD_TYPE.ENUM: "ENUM",
    FIELD_TYPE.SET: "SET",
    FIELD_TYPE.GEOMETRY: "GEOMETRY",
}

# (text name, binary name) for types whose meaning depends on the charset
_CHARSET_TYPE_NAMES = {
    FIELD_TYPE.VARCHAR: ("VARCHAR", "VARBINARY"),
    FIELD_TYPE.VAR_STRING: ("VARCHAR", "VARBINARY"),
    FIELD_TYPE.STRING: ("CHAR", "BINARY"),
    FIELD_TYPE.TINY_BLOB: ("TEXT", "BLOB"),
    FIELD_TYPE.MEDIUM_BLOB: ("TEXT", "BLOB"),
    FIELD_TYPE.LONG_BLOB: ("TEXT", "BLOB"),
    FIELD_TYPE.BLOB: ("TEXT", "BLOB"),
}


def _translate_placeholders(sql: str, has_params: bool) -> str:
    """Convert ``?`` to ``%s``; literal ``%`` is doubled when params are bound."""
    if not has_params:
        return sql
    return sql.replace("%", "%%").replace("?", "%s")


def _type_name(type_code: int, charsetnr: int | None) -> str | None:
    """Database type name for a MySQL field type code."""
    if type_code in _CHARSET_TYPE_NAMES:
        text_name, binary_name = _CHARSET_TYPE_NAMES[type_code]
        return binary_name if charsetnr == _BINARY_CHARSET else text_name
    return _TYPE_NAMES.get(type_code)


def _describe(cursor: aiomysql.Cursor) -> list[Column]:
    """Column metadata from a cursor's description and result fields."""
    description = cursor.description or ()
    # aiomysql 0.1-0.2 keeps the raw field packets on the private
    # Cursor._result (a pymysql MySQLResult); without it binary and text
    # string types are reported by their text names
    fields = getattr(getattr(cursor, "_result", None), "fields", None) or []
    columns = []
    for i, desc in enumerate(description):
        charsetnr = fields[i].charsetnr if i < len(fields) else None
        columns.append(Column(name=desc[0], type_name=_type_name(desc[1], charsetnr)))
    return columns


class MySQLRow:
    """A result tuple with named access, satisfying the Row protocol."""

    def __init__(self, values: tuple[Any, ...], names: list[str]) -> None:
        self._values = values
        self._names = names

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        if isinstance(key, str):
            return self._values[self._names.index(key)]
        return self._values[key]

    def __len__(self) -> int:
        return len(self._values)

    def keys(self) -> list[str]:
        """Return column names."""
        return list(self._names)


class MySQLCursor:
    """Buffered result of one statement, fetched before the connection is released."""

    def __init__(
        self,
        rows: list[tuple[Any, ...]],
        columns: list[Column],
        rowcount: int = -1,
        lastrowid: int | None = None,
    ) -> None:
        self._rows = rows
        self._index = 0
        self._columns = columns
        self._rowcount = rowcount
        self._lastrowid = lastrowid

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        return self._rowcount

    @property
    def lastrowid(self) -> int | None:
        """AUTO_INCREMENT value generated by the last INSERT."""
        return self._lastrowid

    @property
    def columns(self) -> list[Column]:
        """Result column names and MySQL type names."""
        return self._columns

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        if self._index >= len(self._rows):
            return None
        row = MySQLRow(self._rows[self._index], [c.name for c in self._columns])
        self._index += 1
        return row

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        names = [c.name for c in self._columns]
        remaining: list[Row] = [MySQLRow(r, names) for r in self._rows[self._index :]]
        self._index = len(self._rows)
        return remaining

    async def close(self) -> None:
        """Drop buffered rows."""
        self._rows = []
        self._index = 0


class MySQLBackend:
    """MySQL implementation of the Database protocol over an aiomysql pool."""

    def __init__(self, pool: aiomysql.Pool) -> None:
        """Initialize with an aiomysql pool."""
        self._pool = pool

    @classmethod
    async def create(
        cls, connect_kwargs: dict[str, Any], *, max_conns: int, max_lifetime: float = 0.0
    ) -> MySQLBackend:
        """Create a pool; ``connect_kwargs`` go to every aiomysql connection."""
        try:
            pool = await aiomysql.create_pool(
                minsize=1,
                maxsize=max_conns,
                pool_recycle=int(max_lifetime) or -1,
                autocommit=True,
                **connect_kwargs,
            )
        except (pymysql.err.Error, OSError) as exc:
            raise ConnectError(f"cannot connect to mysql: {exc}") from exc
        return cls(pool)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a buffered cursor."""
        args = tuple(params)
        my_sql = _translate_placeholders(sql, bool(args))
        logger.debug("mysql execute: %s", my_sql)
        try:
            async with self._pool.acquire() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(my_sql, args or None)
                    columns = _describe(cur)
                    rows = list(await cur.fetchall()) if cur.description else []
                    return MySQLCursor(rows, columns, cur.rowcount, cur.lastrowid)
        except (pymysql.err.Error, OSError) as exc:
            raise ExecError(str(exc)) from exc

    async def close(self) -> None:
        """Close the pool and wait for its connections to finish."""
        self._pool.close()
        await self._pool.wait_closed()
