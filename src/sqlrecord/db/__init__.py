"""Database backends and connection management."""

from sqlrecord.db.backend import Cursor, Database, Row
from sqlrecord.db.sqlite_backend import SQLiteBackend

try:
    from sqlrecord.db.postgres_backend import PostgresBackend
except ImportError:
    PostgresBackend = None  # type: ignore[assignment,misc]

try:
    from sqlrecord.db.mysql_backend import MySQLBackend
except ImportError:
    MySQLBackend = None  # type: ignore[assignment,misc]

__all__ = ["Cursor", "Database", "MySQLBackend", "PostgresBackend", "Row", "SQLiteBackend"]
