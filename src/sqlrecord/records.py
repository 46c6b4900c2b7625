"""Records and the closed set of scalar values they hold.

Every value that enters or leaves the database through this package is
normalized into one of: ``None``, ``bool``, ``int``, ``float``, ``str``,
``bytes``.
"""

from __future__ import annotations

import datetime
import json
import uuid
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, TypeAlias

from pydantic import BaseModel

from sqlrecord.errors import DecodeError

Scalar: TypeAlias = int | float | str | bytes | bool | None
Record: TypeAlias = dict[str, Scalar]

_TEMPORAL = (datetime.datetime, datetime.date, datetime.time)


def normalize_value(value: Any) -> Scalar:
    """Normalize a Python value into the closed scalar set.

    Decimals become floats, temporal values and UUIDs become text, nested
    mappings and lists become JSON text. Raises DecodeError for anything else.
    """
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, _TEMPORAL):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (Mapping, list, tuple)):
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"cannot encode nested value as JSON: {exc}") from exc
    raise DecodeError(f"unsupported value type {type(value).__name__}")


def decode_document(document: Any) -> Record:
    """Decode one semi-structured document into an ordered Record.

    Accepts a mapping, a pydantic model, JSON text holding an object, or an
    iterable of ``(key, value)`` pairs. Key order is preserved.
    """
    if isinstance(document, BaseModel):
        items: Iterable[Any] = document.model_dump().items()
    elif isinstance(document, Mapping):
        items = document.items()
    elif isinstance(document, (str, bytes, bytearray)):
        try:
            loaded = json.loads(document)
        except ValueError as exc:
            raise DecodeError(f"malformed JSON document: {exc}") from exc
        if not isinstance(loaded, dict):
            raise DecodeError(f"JSON document must be an object, got {type(loaded).__name__}")
        items = loaded.items()
    elif isinstance(document, Iterable):
        items = document
    else:
        raise DecodeError(f"unsupported document type {type(document).__name__}")

    record: Record = {}
    for item in items:
        try:
            key, value = item
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"document items must be (key, value) pairs, got {item!r}") from exc
        if not isinstance(key, str):
            raise DecodeError(f"document keys must be strings, got {key!r}")
        record[key] = normalize_value(value)
    return record
