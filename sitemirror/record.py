"""Per-resource metadata records kept across mirror runs."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

# Response headers copied into a record, under these exact keys.
RECORDED_HEADERS = ("date", "content-type", "content-length", "cache-control", "etag")

# Record attribute -> persisted JSON key.
_JSON_KEYS: Dict[str, str] = {
    "content_type": "content-type",
    "content_length": "content-length",
    "cache_control": "cache-control",
}


def utc_timestamp() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True)
class MetadataRecord:
    """Bookkeeping for one mirrored resource.

    ``version`` counts every attempted fetch, ``fileversion`` only the
    fetches that re-saved the body.
    """

    version: int = 1
    created: Optional[str] = None
    updated: Optional[str] = None
    fileversion: Optional[int] = None
    fileupdated: Optional[str] = None
    status: Optional[int] = None
    errors: Optional[int] = None
    length: Optional[int] = None
    local: Optional[str] = None
    date: Optional[str] = None
    content_type: Optional[str] = None
    content_length: Optional[str] = None
    cache_control: Optional[str] = None
    etag: Optional[str] = None
    # Keys this version does not know about, written back unchanged
    extra: Dict[str, Any] = field(default_factory=dict)

    def next_attempt(self, now: str) -> "MetadataRecord":
        """Copy of this record for a new fetch attempt."""
        return replace(self, version=(self.version or 0) + 1, updated=now, extra=dict(self.extra))

    def set_header(self, name: str, value: str) -> None:
        setattr(self, name.replace("-", "_"), value)

    def get_header(self, name: str) -> Optional[str]:
        return getattr(self, name.replace("-", "_"))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable mapping; unset fields are omitted."""
        data: Dict[str, Any] = {}
        for item in fields(self):
            if item.name == "extra":
                continue
            value = getattr(self, item.name)
            if value is not None:
                data[_JSON_KEYS.get(item.name, item.name)] = value
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MetadataRecord":
        if not isinstance(data, Mapping):
            raise ValueError(f"Metadata record must be an object, got {type(data).__name__}")
        known = {_JSON_KEYS.get(item.name, item.name): item.name for item in fields(cls)}
        known.pop("extra")
        kwargs = {known[k]: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        record = cls(**kwargs, extra=extra)
        if not isinstance(record.version, int):
            raise ValueError(f"Metadata record has invalid version: {record.version!r}")
        return record
