"""Client facade: document-driven writes and record-decoding reads."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from types import TracebackType
from typing import Any

from sqlrecord.cursor import Result, RowCursor
from sqlrecord.db.backend import Database
from sqlrecord.db.connection import open_database
from sqlrecord.db.proxy import Socks5Tunnel
from sqlrecord.errors import ClientClosedError
from sqlrecord.options import ClientOptions
from sqlrecord.records import decode_document
from sqlrecord.statements import (
    exists_statement,
    insert_statement,
    insert_values_statement,
    update_statement,
)

logger = logging.getLogger(__name__)


class Client:
    """Owns a pooled database handle and issues statements through it.

    Every operation accepts a keyword-only ``timeout`` in seconds (None means
    no deadline); cancellation of the calling task propagates to the driver.
    After ``close()`` every operation raises ClientClosedError.
    """

    def __init__(
        self,
        db: Database,
        *,
        ignore_duplicates: bool = False,
        tunnel: Socks5Tunnel | None = None,
    ) -> None:
        """Wrap an open backend; the client takes ownership of it."""
        self._db = db
        self._tunnel = tunnel
        self.ignore_duplicates = ignore_duplicates
        self._closed = False

    @classmethod
    async def connect(cls, options: ClientOptions | None = None) -> Client:
        """Open, ping and wrap a backend described by ``options``."""
        options = options or ClientOptions()
        db, tunnel = await open_database(options)
        return cls(db, ignore_duplicates=options.ignore_duplicates, tunnel=tunnel)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ClientClosedError("client is closed")

    async def exec(self, query: str, *args: Any, timeout: float | None = None) -> Result:
        """Execute an arbitrary parameterized statement."""
        self._check_open()
        async with asyncio.timeout(timeout):
            cursor = await self._db.execute(query, args)
            try:
                return Result.from_cursor(cursor)
            finally:
                await cursor.close()

    async def finds(self, query: str, *args: Any, timeout: float | None = None) -> RowCursor:
        """Run a query and return a cursor of decoded Records."""
        self._check_open()
        async with asyncio.timeout(timeout):
            cursor = await self._db.execute(query, args)
        return RowCursor(cursor)

    async def insert(
        self,
        table: str,
        *documents: Any,
        ignore: bool | None = None,
        timeout: float | None = None,
    ) -> Result:
        """Insert one row per document; columns are the union of their keys.

        ``ignore`` skips rows that hit a duplicate key (defaults to the
        client's ``ignore_duplicates``).
        """
        self._check_open()
        if ignore is None:
            ignore = self.ignore_duplicates
        sql, values = insert_statement(table, documents, ignore=ignore)
        return await self.exec(sql, *values, timeout=timeout)

    async def insert_with_values(
        self,
        table: str,
        *rows: Sequence[Any],
        ignore: bool | None = None,
        timeout: float | None = None,
    ) -> Result:
        """Insert positional rows without a column list."""
        self._check_open()
        if ignore is None:
            ignore = self.ignore_duplicates
        sql, values = insert_values_statement(table, rows, ignore=ignore)
        return await self.exec(sql, *values, timeout=timeout)

    async def update(
        self, table: str, document: Any, where: str, *args: Any, timeout: float | None = None
    ) -> Result:
        """Set the document's fields on rows matching ``where``.

        A blank ``where`` raises EmptyWhereClauseError.
        """
        self._check_open()
        sql, values = update_statement(table, document, where, args)
        return await self.exec(sql, *values, timeout=timeout)

    async def exists(
        self, table: str, where: str, *args: Any, timeout: float | None = None
    ) -> bool:
        """Return True if any row of ``table`` matches ``where``."""
        self._check_open()
        sql, values = exists_statement(table, where, args)
        cursor = await self.finds(sql, *values, timeout=timeout)
        async with cursor:
            return await cursor.fetch() is not None

    async def upsert(
        self, table: str, document: Any, where: str, *args: Any, timeout: float | None = None
    ) -> Result:
        """Update matching rows, inserting the document when none exist.

        Not atomic: a concurrent insert between the existence check and the
        fallback insert is left to the table's unique constraints. Use the
        database's native upsert through ``exec`` when that matters.
        """
        # decoded once, the document may be a one-shot iterable of pairs
        record = decode_document(document)
        result = await self.update(table, record, where, *args, timeout=timeout)
        if result.rows_affected() > 0:
            return result
        # MySQL reports 0 affected rows when the values were already current
        if await self.exists(table, where, *args, timeout=timeout):
            return result
        logger.debug("upsert into %s found no row, inserting", table)
        return await self.insert(table, record, timeout=timeout)

    async def close(self) -> None:
        """Release the database handle and tunnel; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._db.close()
        finally:
            if self._tunnel is not None:
                await self._tunnel.close()

    async def __aenter__(self) -> Client:
        self._check_open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
