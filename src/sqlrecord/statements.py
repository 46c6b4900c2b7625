"""Build parameterized INSERT/UPDATE/EXISTS statements from documents.

All statements use ``?`` placeholders and MySQL-flavored ``INSERT IGNORE``;
backends translate to their own dialect at execute time. Table and column
names are interpolated as given.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from sqlrecord.errors import DecodeError, EmptyWhereClauseError
from sqlrecord.records import Record, Scalar, decode_document, normalize_value


def _group(size: int) -> str:
    return "(" + ", ".join(["?"] * size) + ")"


def _require_where(where: str) -> None:
    if not where or not where.strip():
        raise EmptyWhereClauseError("where clause is empty")


def build_insert(documents: Iterable[Any]) -> tuple[list[str], list[str], list[Scalar]]:
    """Return ``(columns, placeholder_groups, args)`` for a multi-row INSERT.

    Columns are the union of document keys in first-seen order. A document
    lacking a column binds ``None`` for it. Every document is decoded before
    anything is returned, so a bad document aborts the whole build.
    """
    records: list[Record] = []
    columns: list[str] = []
    seen: set[str] = set()
    for document in documents:
        record = decode_document(document)
        for key in record:
            if key not in seen:
                seen.add(key)
                columns.append(key)
        records.append(record)

    if not records:
        raise DecodeError("no documents to insert")
    if not columns:
        raise DecodeError("documents have no fields to insert")

    groups = [_group(len(columns))] * len(records)
    args = [record.get(column) for record in records for column in columns]
    return columns, groups, args


def build_insert_from_rows(rows: Iterable[Sequence[Any]]) -> tuple[list[str], list[Scalar]]:
    """Return ``(placeholder_groups, args)`` for positional rows.

    Each row gets a group sized to its own length; matching the table's
    column count is up to the caller.
    """
    groups: list[str] = []
    args: list[Scalar] = []
    for row in rows:
        groups.append(_group(len(row)))
        args.extend(normalize_value(value) for value in row)
    if not groups:
        raise DecodeError("no rows to insert")
    return groups, args


def build_update(
    document: Any, where: str, where_args: Sequence[Any] = ()
) -> tuple[str, list[Scalar]]:
    """Return ``(set_clause, args)``; the WHERE args follow the SET args."""
    _require_where(where)
    record = decode_document(document)
    if not record:
        raise DecodeError("document has no fields to update")
    set_clause = ", ".join(f"{key}=?" for key in record)
    args = list(record.values())
    args.extend(normalize_value(value) for value in where_args)
    return set_clause, args


def _insert_verb(ignore: bool) -> str:
    return "INSERT IGNORE INTO" if ignore else "INSERT INTO"


def insert_statement(
    table: str, documents: Iterable[Any], *, ignore: bool = False
) -> tuple[str, list[Scalar]]:
    """Full INSERT statement for documents."""
    columns, groups, args = build_insert(documents)
    sql = f"{_insert_verb(ignore)} {table} ({', '.join(columns)}) VALUES {', '.join(groups)}"
    return sql, args


def insert_values_statement(
    table: str, rows: Iterable[Sequence[Any]], *, ignore: bool = False
) -> tuple[str, list[Scalar]]:
    """Full INSERT statement for positional rows (no column list)."""
    groups, args = build_insert_from_rows(rows)
    return f"{_insert_verb(ignore)} {table} VALUES {', '.join(groups)}", args


def update_statement(
    table: str, document: Any, where: str, where_args: Sequence[Any] = ()
) -> tuple[str, list[Scalar]]:
    """Full UPDATE statement."""
    set_clause, args = build_update(document, where, where_args)
    return f"UPDATE {table} SET {set_clause} WHERE {where}", args


def exists_statement(
    table: str, where: str, where_args: Sequence[Any] = ()
) -> tuple[str, list[Scalar]]:
    """``SELECT 1 ... LIMIT 1`` probe for a matching row."""
    _require_where(where)
    args = [normalize_value(value) for value in where_args]
    return f"SELECT 1 FROM {table} WHERE {where} LIMIT 1", args
