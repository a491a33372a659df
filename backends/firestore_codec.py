"""
Firestore value codec — converts between plain Python values and the typed
JSON values of the Firestore REST API ({"stringValue": ...}, {"mapValue": ...}).
"""

from datetime import datetime
from enum import Enum
from typing import Any

from backends.base import ServerTimestamp
from tools.timeutil import parse_timestamp, to_rfc3339


def clean_data(value: Any) -> Any:
    """
    Recursively drop None values, empty strings, empty lists and empty maps
    before a write. Returns None when nothing is left.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value if value != "" else None
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            item = clean_data(item)
            if item is not None:
                cleaned[key] = item
        return cleaned or None
    if isinstance(value, (list, tuple)):
        cleaned = [c for c in (clean_data(item) for item in value) if c is not None]
        return cleaned or None
    return value


def encode_value(value: Any) -> dict:
    """Encode one Python value as a Firestore Value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, Enum):
        value = value.value
    # bool before int: True is an int
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, ServerTimestamp):
        return {"timestampValue": to_rfc3339(value.to_datetime())}
    if isinstance(value, datetime):
        return {"timestampValue": to_rfc3339(value)}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: dict) -> dict:
    """Encode a mapping as a Firestore `fields` object."""
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(value: dict) -> Any:
    """
    Decode one Firestore Value. Timestamps come back as aware datetimes;
    value kinds this app never writes (bytes, geo points, references) are
    passed through as their raw payload.
    """
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "nullValue" in value:
        return None
    if "timestampValue" in value:
        parsed = parse_timestamp(value["timestampValue"])
        return parsed if parsed is not None else value["timestampValue"]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    for kind in ("bytesValue", "referenceValue", "geoPointValue"):
        if kind in value:
            return value[kind]
    return None


def decode_fields(fields: dict) -> dict:
    return {key: decode_value(value) for key, value in fields.items()}


def document_id(name: str) -> str:
    """Last path segment of a full document name."""
    return name.rstrip("/").rsplit("/", 1)[-1]


def decode_document(document: dict) -> dict:
    """
    Turn a REST Document into a plain record; the document id becomes "id"
    (it wins over any stored "id" field).
    """
    record = decode_fields(document.get("fields", {}))
    if document.get("name"):
        record["id"] = document_id(document["name"])
    return record
