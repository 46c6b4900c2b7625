"""Tests for declared-type resolution and row decoding."""

import datetime
import logging
from decimal import Decimal

import pytest

from sqlrecord.decoder import Column, RecordDecoder, ValueKind, resolve_kind
from sqlrecord.errors import DecodeError, ScanError


@pytest.mark.parametrize(
    ("type_name", "kind"),
    [
        ("INT", ValueKind.INTEGER),
        ("BIGINT", ValueKind.INTEGER),
        ("TINYINT", ValueKind.INTEGER),
        ("int4", ValueKind.INTEGER),
        ("INTEGER", ValueKind.INTEGER),
        ("VARCHAR", ValueKind.STRING),
        ("CHAR", ValueKind.STRING),
        ("TEXT", ValueKind.STRING),
        ("MEDIUMTEXT", ValueKind.STRING),
        ("BLOB", ValueKind.BYTES),
        ("LONGBLOB", ValueKind.BYTES),
        ("DATE", ValueKind.STRING),
        ("TIME", ValueKind.STRING),
        ("YEAR", ValueKind.STRING),
        ("DATETIME", ValueKind.STRING),
        ("TIMESTAMP", ValueKind.STRING),
        ("DECIMAL", ValueKind.FLOAT),
        ("FLOAT", ValueKind.FLOAT),
        ("DOUBLE", ValueKind.FLOAT),
        ("REAL", ValueKind.FLOAT),
        ("float4", ValueKind.FLOAT),
        ("float8", ValueKind.FLOAT),
        ("numeric", ValueKind.FLOAT),
        ("timestamptz", ValueKind.STRING),
        ("BOOL", ValueKind.BOOL),
        (None, ValueKind.NATIVE),
        ("", ValueKind.NATIVE),
    ],
)
def test_resolve_kind(type_name, kind):
    assert resolve_kind(type_name) == kind


@pytest.mark.parametrize("type_name", ["JSON", "GEOMETRY", "bytea", "VARBINARY"])
def test_resolve_kind_unrecognized(type_name):
    assert resolve_kind(type_name) is None


def test_int_rule_wins_over_later_rules():
    # "POINT" ends with INT, first match wins
    assert resolve_kind("POINT") == ValueKind.INTEGER


class TestRecordDecoder:
    def test_coerces_by_declared_type(self):
        decoder = RecordDecoder(
            [
                Column("id", "BIGINT"),
                Column("price", "DECIMAL"),
                Column("created", "DATETIME"),
                Column("name", "VARCHAR"),
                Column("data", "BLOB"),
                Column("active", "BOOL"),
            ]
        )
        record = decoder.decode(
            (
                Decimal("5"),
                Decimal("1.25"),
                datetime.datetime(2024, 5, 6, 7, 8, 9),
                b"ann",
                "raw",
                1,
            )
        )
        assert record == {
            "id": 5,
            "price": 1.25,
            "created": "2024-05-06T07:08:09",
            "name": "ann",
            "data": b"raw",
            "active": True,
        }
        assert isinstance(record["id"], int)

    @pytest.mark.parametrize("value", [Decimal("1.5"), 2.25, Decimal("Infinity")])
    def test_non_integral_value_in_integer_column(self, value):
        decoder = RecordDecoder([Column("id", "INT")])
        with pytest.raises(DecodeError) as info:
            decoder.decode((value,))
        assert info.value.column == "id"

    def test_integral_float_in_integer_column(self):
        decoder = RecordDecoder([Column("id", "INT")])
        assert decoder.decode((3.0,)) == {"id": 3}

    def test_postgres_numeric_types_not_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="sqlrecord.decoder"):
            decoder = RecordDecoder([Column("a", "float8"), Column("b", "numeric")])
            record = decoder.decode((1.5, Decimal("2.5")))
        assert record == {"a": 1.5, "b": 2.5}
        assert not caplog.records

    def test_nulls_stay_null(self):
        decoder = RecordDecoder([Column("a", "INT"), Column("b", "TEXT")])
        assert decoder.decode((None, None)) == {"a": None, "b": None}

    def test_native_values_are_normalized(self):
        decoder = RecordDecoder([Column("a"), Column("b"), Column("c")])
        record = decoder.decode((3, memoryview(b"xy"), Decimal("0.5")))
        assert record == {"a": 3, "b": b"xy", "c": 0.5}

    def test_bit_bool(self):
        decoder = RecordDecoder([Column("flag", "BOOL")])
        assert decoder.decode((b"\x00",)) == {"flag": False}
        assert decoder.decode((b"\x01",)) == {"flag": True}

    def test_unsupported_type_logged_once(self, caplog):
        with caplog.at_level(logging.INFO, logger="sqlrecord.decoder"):
            decoder = RecordDecoder([Column("doc", "JSON")])
            decoder.decode(('{"a": 1}',))
            decoder.decode(('{"a": 2}',))
        notices = [r for r in caplog.records if "unsupported column type" in r.getMessage()]
        assert len(notices) == 1
        assert decoder.kinds == [ValueKind.NATIVE]

    def test_missing_type_not_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="sqlrecord.decoder"):
            RecordDecoder([Column("a")])
        assert not caplog.records

    def test_decode_error_carries_partial_record(self):
        decoder = RecordDecoder([Column("a", "INT"), Column("b", "INT"), Column("c", "INT")])
        with pytest.raises(DecodeError) as info:
            decoder.decode((1, "zz", 3))
        assert info.value.partial == {"a": 1}
        assert info.value.column == "b"

    def test_unsupported_native_value(self):
        decoder = RecordDecoder([Column("a")])
        with pytest.raises(DecodeError):
            decoder.decode((object(),))

    def test_width_mismatch(self):
        decoder = RecordDecoder([Column("a"), Column("b")])
        with pytest.raises(ScanError, match="expected 2"):
            decoder.decode((1,))

    def test_names(self):
        decoder = RecordDecoder([Column("a"), Column("b")])
        assert decoder.names == ["a", "b"]
