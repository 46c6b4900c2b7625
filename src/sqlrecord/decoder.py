"""Decode result rows into Records using per-column declared types."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlrecord.errors import DecodeError, ScanError
from sqlrecord.records import Record, normalize_value

if TYPE_CHECKING:
    from sqlrecord.db.backend import Row

logger = logging.getLogger(__name__)

_TEMPORAL_TYPES = frozenset(
    {"DATE", "TIME", "YEAR", "DATETIME", "TIMESTAMP", "TIMESTAMPTZ", "TIMETZ"}
)
# FLOAT4, FLOAT8 and NUMERIC are the names asyncpg reports
_FLOAT_TYPES = frozenset({"DECIMAL", "FLOAT", "DOUBLE", "REAL", "FLOAT4", "FLOAT8", "NUMERIC"})
_BOOL_TYPES = frozenset({"BOOL", "BOOLEAN"})


class ValueKind(StrEnum):
    """Target scalar kind for a result column."""

    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BYTES = "bytes"
    BOOL = "bool"
    NATIVE = "native"


@dataclass(frozen=True)
class Column:
    """Column metadata captured when a query runs."""

    name: str
    type_name: str | None = None


def resolve_kind(type_name: str | None) -> ValueKind | None:
    """Map a database type name to a ValueKind, first match wins.

    Returns None when the name is not recognized; callers fall back to the
    driver's native value.
    """
    if not type_name:
        return ValueKind.NATIVE
    name = type_name.upper()
    if name.startswith("INT") or name.endswith("INT"):
        return ValueKind.INTEGER
    if name.endswith("CHAR") or name.endswith("TEXT"):
        return ValueKind.STRING
    if name.endswith("BLOB"):
        return ValueKind.BYTES
    if name in _TEMPORAL_TYPES:
        return ValueKind.STRING
    if name in _FLOAT_TYPES:
        return ValueKind.FLOAT
    if name in _BOOL_TYPES:
        return ValueKind.BOOL
    return None


def _to_int(value: Any) -> int:
    if isinstance(value, bytes):
        value = value.decode()
    if isinstance(value, (float, Decimal)) and value != int(value):
        raise ValueError(f"{value} is not integral")
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bytes):
        value = value.decode()
    return float(value)


def _to_str(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bytes):
        # BIT(1) columns arrive as a single byte
        return any(value)
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "f", "no", "off")
    return bool(value)


_COERCE = {
    ValueKind.INTEGER: _to_int,
    ValueKind.FLOAT: _to_float,
    ValueKind.STRING: _to_str,
    ValueKind.BYTES: _to_bytes,
    ValueKind.BOOL: _to_bool,
    ValueKind.NATIVE: normalize_value,
}


class RecordDecoder:
    """Decodes rows of one result set; the type plan is computed once."""

    def __init__(self, columns: Sequence[Column]) -> None:
        self.columns = list(columns)
        self.kinds: list[ValueKind] = []
        for column in self.columns:
            kind = resolve_kind(column.type_name)
            if kind is None:
                logger.info(
                    "unsupported column type %s for %s, using driver value",
                    column.type_name,
                    column.name,
                )
                kind = ValueKind.NATIVE
            self.kinds.append(kind)

    @property
    def names(self) -> list[str]:
        """Column names in result order."""
        return [column.name for column in self.columns]

    def decode(self, row: Row | Sequence[Any]) -> Record:
        """Decode one row into a Record.

        Raises ScanError when the row does not match the column metadata and
        DecodeError (with the partial record) when a value cannot be coerced.
        """
        try:
            width = len(row)
            values = [row[i] for i in range(width)]
        except (IndexError, KeyError, TypeError) as exc:
            raise ScanError(f"cannot read row: {exc}") from exc
        if width != len(self.columns):
            raise ScanError(f"row has {width} values, expected {len(self.columns)} columns")

        record: Record = {}
        for column, kind, value in zip(self.columns, self.kinds, values, strict=True):
            if value is None:
                record[column.name] = None
                continue
            try:
                record[column.name] = _COERCE[kind](value)
            except (DecodeError, TypeError, ValueError, OverflowError) as exc:
                raise DecodeError(
                    f"cannot decode column {column.name} as {kind}: {exc}",
                    partial=record,
                    column=column.name,
                ) from exc
        return record

