"""Tests for the SQLite backend."""

import pytest

from sqlrecord.db.backend import Cursor, Database
from sqlrecord.db.sqlite_backend import SQLiteBackend, _translate_insert_ignore
from sqlrecord.errors import ConnectError, ExecError, ScanError


def test_translate_insert_ignore():
    assert _translate_insert_ignore("INSERT IGNORE INTO t VALUES (?)") == (
        "INSERT OR IGNORE INTO t VALUES (?)"
    )
    assert _translate_insert_ignore("  insert  ignore into t VALUES (?)") == (
        "INSERT OR IGNORE INTO t VALUES (?)"
    )
    assert _translate_insert_ignore("INSERT INTO t VALUES (?)") == "INSERT INTO t VALUES (?)"


@pytest.mark.asyncio
async def test_satisfies_protocols(db):
    assert isinstance(db, Database)
    cursor = await db.execute("SELECT 1")
    assert isinstance(cursor, Cursor)
    await cursor.close()


@pytest.mark.asyncio
async def test_columns_have_no_declared_types(db):
    cursor = await db.execute("SELECT id, name FROM users")
    assert [(c.name, c.type_name) for c in cursor.columns] == [("id", None), ("name", None)]
    await cursor.close()


@pytest.mark.asyncio
async def test_autocommit_rowcount_and_lastrowid(db):
    cursor = await db.execute("INSERT INTO users (name) VALUES (?), (?)", ["a", "b"])
    assert cursor.rowcount == 2
    assert cursor.lastrowid == 2


@pytest.mark.asyncio
async def test_execute_error_is_wrapped(db):
    with pytest.raises(ExecError, match="no such table"):
        await db.execute("SELECT * FROM nope")


@pytest.mark.asyncio
async def test_fetch_after_close_is_scan_error(db):
    cursor = await db.execute("SELECT 1")
    await cursor.close()
    with pytest.raises(ScanError):
        await cursor.fetchone()


@pytest.mark.asyncio
async def test_open_failure(tmp_path):
    with pytest.raises(ConnectError):
        await SQLiteBackend.create(str(tmp_path / "missing" / "dir" / "x.db"))
