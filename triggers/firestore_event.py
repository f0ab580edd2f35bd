from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


class InvalidEventError(ValueError):
    """Event payload cannot be decoded; retrying the delivery would not help."""


@dataclass
class FirestoreEvent:
    event_id: str
    event_type: str
    document_path: str
    value: Dict[str, Any] = field(default_factory=dict)
    old_value: Dict[str, Any] = field(default_factory=dict)

    @property
    def document_id(self) -> str:
        return self.document_path.rsplit("/", 1)[-1] if self.document_path else ""


_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(v: str) -> datetime:
    """RFC 3339 with up to nanosecond precision; Python keeps microseconds."""
    s = (v or "").strip()
    if not s:
        raise InvalidEventError("empty timestamp")
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    s = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), s, count=1)
    try:
        ts = datetime.fromisoformat(s)
    except ValueError as e:
        raise InvalidEventError(f"bad timestamp: {v!r}") from e
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def decode_value(v: Mapping[str, Any]) -> Any:
    """Decode one typed Firestore value from its JSON (REST / Eventarc) encoding."""
    if not isinstance(v, Mapping) or len(v) != 1:
        raise InvalidEventError(f"malformed firestore value: {v!r}")
    kind, raw = next(iter(v.items()))
    if kind == "nullValue":
        return None
    if kind == "booleanValue":
        return bool(raw)
    if kind == "integerValue":
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise InvalidEventError(f"bad integerValue: {raw!r}") from e
    if kind == "doubleValue":
        try:
            return float(raw)
        except (TypeError, ValueError) as e:
            raise InvalidEventError(f"bad doubleValue: {raw!r}") from e
    if kind in ("stringValue", "referenceValue"):
        return str(raw)
    if kind == "bytesValue":
        return base64.b64decode(raw)
    if kind == "timestampValue":
        return parse_timestamp(raw)
    if kind == "geoPointValue":
        raw = raw or {}
        return {"latitude": float(raw.get("latitude", 0.0)), "longitude": float(raw.get("longitude", 0.0))}
    if kind == "mapValue":
        return decode_fields((raw or {}).get("fields") or {})
    if kind == "arrayValue":
        return [decode_value(x) for x in (raw or {}).get("values") or []]
    raise InvalidEventError(f"unsupported firestore value type: {kind}")


def decode_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def _document_path(name: str) -> str:
    # projects/{p}/databases/{db}/documents/donations/abc -> donations/abc
    marker = "/documents/"
    if marker in name:
        return name.split(marker, 1)[1]
    return name


def parse_event(headers: Mapping[str, str], body: Optional[Mapping[str, Any]]) -> FirestoreEvent:
    """
    Build a FirestoreEvent from a binary-mode CloudEvent delivery:
    ce-* headers plus a JSON DocumentEventData body.
    """
    event_id = (headers.get("ce-id") or "").strip()
    if not event_id:
        raise InvalidEventError("missing ce-id header")
    if not isinstance(body, Mapping):
        raise InvalidEventError("event body must be a JSON object")

    value = body.get("value") or {}
    old_value = body.get("oldValue") or {}
    name = value.get("name") or old_value.get("name") or ""
    subject = (headers.get("ce-subject") or "").strip()
    path = _document_path(name) if name else subject.removeprefix("documents/")
    if not path:
        raise InvalidEventError("cannot determine document path")

    return FirestoreEvent(
        event_id=event_id,
        event_type=(headers.get("ce-type") or "").strip(),
        document_path=path,
        value=decode_fields(value.get("fields") or {}),
        old_value=decode_fields(old_value.get("fields") or {}),
    )
