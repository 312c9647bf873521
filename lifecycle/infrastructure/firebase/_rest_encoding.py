"""Encode/decode Python values to/from Firestore REST API value format.

Decoding is lossless enough for verbatim export: references decode to their
document path and geo points to {"latitude", "longitude"} maps.
"""

import base64
from datetime import UTC, datetime
from typing import Any


def encode_value(v: Any) -> dict[str, Any]:
    """Encode one Python value as a Firestore Value."""
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=UTC)
        return {"timestampValue": v.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, bytes):
        return {"bytesValue": base64.standard_b64encode(v).decode("ascii")}
    if isinstance(v, list | tuple):
        return {"arrayValue": {"values": [encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": encode_fields(v)}}
    raise TypeError(f"Unsupported Firestore value type: {type(v)}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Encode a Python dict as a Firestore Document.fields map."""
    return {k: encode_value(v) for k, v in data.items()}


def decode_value(obj: dict[str, Any]) -> Any:
    """Decode one Firestore Value to Python."""
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    if "integerValue" in obj:
        return int(obj["integerValue"])
    if "doubleValue" in obj:
        return float(obj["doubleValue"])
    if "timestampValue" in obj:
        return datetime.fromisoformat(obj["timestampValue"].replace("Z", "+00:00"))
    if "stringValue" in obj:
        return obj["stringValue"]
    if "bytesValue" in obj:
        return base64.standard_b64decode(obj["bytesValue"])
    if "referenceValue" in obj:
        return obj["referenceValue"]
    if "geoPointValue" in obj:
        point = obj["geoPointValue"]
        return {
            "latitude": point.get("latitude", 0.0),
            "longitude": point.get("longitude", 0.0),
        }
    if "arrayValue" in obj:
        return [decode_value(x) for x in obj["arrayValue"].get("values") or []]
    if "mapValue" in obj:
        return decode_fields(obj["mapValue"].get("fields"))
    return None


def decode_fields(fields: dict[str, Any] | None) -> dict[str, Any]:
    """Decode a Firestore Document.fields map to a Python dict."""
    if not fields:
        return {}
    return {k: decode_value(v) for k, v in fields.items()}


def document_id(name: str) -> str:
    """Return the last path segment of a full Firestore document name."""
    return name.rsplit("/", 1)[-1] if name else ""
