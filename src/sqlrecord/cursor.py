"""Statement results and the single-pass record cursor."""

from __future__ import annotations

from collections.abc import AsyncIterator
from types import TracebackType

from sqlrecord.db.backend import Cursor
from sqlrecord.decoder import Column, RecordDecoder
from sqlrecord.errors import DecodeError, ExecError, ScanError
from sqlrecord.records import Record


class Result:
    """Outcome of a write statement.

    Both values are optional at the driver level, so each accessor raises
    ExecError when the backend could not report it.
    """

    def __init__(self, rows_affected: int = -1, last_insert_id: int | None = None) -> None:
        self._rows_affected = rows_affected
        self._last_insert_id = last_insert_id

    @classmethod
    def from_cursor(cls, cursor: Cursor) -> Result:
        """Capture rowcount and lastrowid from a driver cursor."""
        return cls(cursor.rowcount, cursor.lastrowid)

    def rows_affected(self) -> int:
        """Number of rows the statement changed."""
        if self._rows_affected < 0:
            raise ExecError("rows affected is not available for this statement")
        return self._rows_affected

    def last_insert_id(self) -> int:
        """Identifier generated by the last INSERT."""
        if self._last_insert_id is None:
            raise ExecError("last insert id is not available for this statement")
        return self._last_insert_id

    def __repr__(self) -> str:
        return f"Result(rows_affected={self._rows_affected}, last_insert_id={self._last_insert_id})"


class RowCursor:
    """Forward-only cursor yielding decoded Records.

    The cursor closes itself when exhausted, when a row fails to scan or
    decode, and when an ``async with`` block exits. Plain ``async for`` over
    the cursor leaves it open on ``break``; iterate ``records()`` (or use
    ``async with``) when the loop may stop early. ``fetch()`` on a closed
    cursor raises ScanError; iterating a closed cursor yields nothing.
    Not safe for concurrent use.
    """

    def __init__(self, cursor: Cursor) -> None:
        self._cursor = cursor
        self._decoder = RecordDecoder(cursor.columns)
        self._closed = False

    @property
    def columns(self) -> list[Column]:
        """Column metadata captured when the query ran."""
        return self._decoder.columns

    @property
    def closed(self) -> bool:
        return self._closed

    async def fetch(self) -> Record | None:
        """Return the next Record, or None once the result set is exhausted."""
        if self._closed:
            raise ScanError("cursor is closed")
        try:
            row = await self._cursor.fetchone()
            if row is None:
                await self.close()
                return None
            return self._decoder.decode(row)
        except (ScanError, DecodeError):
            await self.close()
            raise

    async def records(self) -> AsyncIterator[Record]:
        """Yield the remaining Records, closing the cursor however the loop ends.

        Breaking out early closes the cursor once the generator is closed,
        e.g. through ``contextlib.aclosing`` or garbage collection.
        """
        try:
            while not self._closed:
                record = await self.fetch()
                if record is None:
                    return
                yield record
        finally:
            await self.close()

    async def fetchall(self) -> list[Record]:
        """Return every remaining Record and close the cursor."""
        return [record async for record in self.records()]

    async def close(self) -> None:
        """Release the underlying cursor; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        await self._cursor.close()

    def __aiter__(self) -> RowCursor:
        return self

    async def __anext__(self) -> Record:
        if self._closed:
            raise StopAsyncIteration
        record = await self.fetch()
        if record is None:
            raise StopAsyncIteration
        return record

    async def __aenter__(self) -> RowCursor:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
