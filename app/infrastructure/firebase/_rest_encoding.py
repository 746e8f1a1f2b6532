"""Encode/decode Python values to/from Firestore REST API 'fields' format."""

import base64
import re
from datetime import datetime
from typing import Any


class _ServerTimestamp:
    """Sentinel: ask the server to set the field to the commit time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class DocumentRef:
    """A value that encodes as a Firestore referenceValue (used for __name__ cursors)."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DocumentRef) and other.name == self.name

    def __repr__(self) -> str:
        return f"DocumentRef({self.name!r})"


# Firestore returns nanosecond precision; datetime holds microseconds.
_FRACTION_RE = re.compile(r"\.(\d{6})\d*")


def parse_timestamp(raw: str) -> datetime:
    normalized = _FRACTION_RE.sub(r".\1", raw.replace("Z", "+00:00"))
    return datetime.fromisoformat(normalized)


def _encode_value(v: Any) -> dict:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        return {"timestampValue": v.strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, DocumentRef):
        return {"referenceValue": v.name}
    if isinstance(v, bytes):
        return {"bytesValue": base64.standard_b64encode(v).decode("ascii")}
    if isinstance(v, list):
        return {"arrayValue": {"values": [_encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": {k: _encode_value(x) for k, x in v.items()}}}
    raise TypeError(f"Unsupported Firestore value type: {type(v)}")


def encode_document(data: dict[str, Any]) -> dict:
    """Convert a Python dict to Firestore REST Document.fields format.

    SERVER_TIMESTAMP values are skipped; use split_transforms() for writes.
    """
    return {
        "fields": {
            k: _encode_value(v) for k, v in data.items() if v is not SERVER_TIMESTAMP
        }
    }


def split_transforms(data: dict[str, Any]) -> tuple[dict[str, Any], list[dict]]:
    """Split write data into plain fields and Write.updateTransforms.

    Returns:
        (fields without sentinels, list of FieldTransform dicts).
    """
    plain: dict[str, Any] = {}
    transforms: list[dict] = []
    for key, value in data.items():
        if value is SERVER_TIMESTAMP:
            transforms.append({"fieldPath": key, "setToServerValue": "REQUEST_TIME"})
        else:
            plain[key] = value
    return plain, transforms


def _decode_value(obj: dict) -> Any:
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    if "integerValue" in obj:
        return int(obj["integerValue"])
    if "doubleValue" in obj:
        return obj["doubleValue"]
    if "timestampValue" in obj:
        return parse_timestamp(obj["timestampValue"])
    if "stringValue" in obj:
        return obj["stringValue"]
    if "referenceValue" in obj:
        return DocumentRef(obj["referenceValue"])
    if "bytesValue" in obj:
        return base64.standard_b64decode(obj["bytesValue"])
    if "arrayValue" in obj:
        vals = obj.get("arrayValue", {}).get("values") or []
        return [_decode_value(x) for x in vals]
    if "mapValue" in obj:
        fields = obj["mapValue"].get("fields") or {}
        return {k: _decode_value(x) for k, x in fields.items()}
    return None


def decode_fields(fields: dict | None) -> dict:
    """Convert a Firestore REST Document.fields mapping to a Python dict."""
    if not fields:
        return {}
    return {k: _decode_value(v) for k, v in fields.items()}
