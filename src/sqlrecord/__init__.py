"""Async convenience layer over relational database drivers."""

from sqlrecord.client import Client
from sqlrecord.cursor import Result, RowCursor
from sqlrecord.decoder import Column, RecordDecoder, ValueKind
from sqlrecord.errors import (
    ClientClosedError,
    ConfigError,
    ConnectError,
    DecodeError,
    EmptyWhereClauseError,
    ExecError,
    ScanError,
    SQLRecordError,
)
from sqlrecord.options import ClientOptions
from sqlrecord.records import Record, Scalar

__all__ = [
    "Client",
    "ClientClosedError",
    "ClientOptions",
    "Column",
    "ConfigError",
    "ConnectError",
    "DecodeError",
    "EmptyWhereClauseError",
    "ExecError",
    "Record",
    "RecordDecoder",
    "Result",
    "RowCursor",
    "SQLRecordError",
    "Scalar",
    "ScanError",
    "ValueKind",
]
