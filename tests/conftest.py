"""Shared test fixtures."""

import pytest
import pytest_asyncio

from sqlrecord.client import Client
from sqlrecord.db.sqlite_backend import SQLiteBackend
from sqlrecord.options import ClientOptions

USERS_DDL = """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        age INTEGER,
        score REAL,
        avatar BLOB
    )
"""


@pytest_asyncio.fixture
async def db():
    """In-memory SQLite backend with a users table."""
    backend = await SQLiteBackend.create(":memory:")
    await backend.execute(USERS_DDL)
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def client():
    """Client over an in-memory SQLite database with a users table."""
    conn = await Client.connect(ClientOptions(driver_name="sqlite"))
    await conn.exec(USERS_DDL)
    yield conn
    await conn.close()


class FakeCursor:
    """In-memory Cursor over a list of tuples, recording close() calls."""

    def __init__(self, rows, columns, *, rowcount=-1, lastrowid=None, fail_on_fetch=None):
        self._rows = list(rows)
        self._columns = columns
        self._rowcount = rowcount
        self._lastrowid = lastrowid
        self._fail_on_fetch = fail_on_fetch
        self.close_count = 0

    @property
    def rowcount(self):
        return self._rowcount

    @property
    def lastrowid(self):
        return self._lastrowid

    @property
    def columns(self):
        return self._columns

    async def fetchone(self):
        if self._fail_on_fetch is not None:
            raise self._fail_on_fetch
        if not self._rows:
            return None
        return self._rows.pop(0)

    async def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    async def close(self):
        self.close_count += 1


@pytest.fixture
def fake_cursor():
    """Factory for FakeCursor instances."""
    return FakeCursor
