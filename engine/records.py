"""
Log record and result set value types, built from an already-fetched page of
the upstream log search API, plus attribute lookup and timestamp helpers shared
by every analyzer.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from config import RESERVED_ATTRIBUTES

log = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class LogRecord:
    id: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def get(self, path: str, default: Any = None) -> Any:
        return get_path(self.attributes, path, default)

    @property
    def timestamp(self) -> str:
        value = self.attributes.get("timestamp")
        return "" if value is None else str(value)

    @property
    def status(self) -> str:
        return str(self.attributes.get("status") or "").lower()

    @property
    def service(self) -> Optional[str]:
        value = self.attributes.get("service")
        return None if value in (None, "") else str(value)

    @property
    def message(self) -> str:
        value = self.attributes.get("message")
        return "" if value is None else str(value)


@dataclass(frozen=True)
class ResultSet:
    records: Tuple[LogRecord, ...] = ()
    cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return bool(self.cursor)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def with_records(self, records: Iterable[LogRecord]) -> ResultSet:
        return ResultSet(records=tuple(records), cursor=self.cursor)

    @classmethod
    def from_records(cls, records: Iterable[Any], cursor: Optional[str] = None) -> ResultSet:
        built = []
        for index, raw in enumerate(records):
            if isinstance(raw, LogRecord):
                built.append(raw)
            elif isinstance(raw, Mapping):
                built.append(_record_from_entry(raw, index))
        return cls(records=tuple(built), cursor=cursor)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> ResultSet:
        data = payload.get("data") or []
        if not isinstance(data, list):
            log.warning("from_response: 'data' is not a list: %s", type(data).__name__)
            data = []
        page = (payload.get("meta") or {}).get("page") or {}
        cursor = page.get("after") if isinstance(page, Mapping) else None
        return cls.from_records(data, cursor=cursor or None)


def _record_from_entry(entry: Mapping[str, Any], index: int) -> LogRecord:
    attrs = entry.get("attributes")
    if not isinstance(attrs, Mapping):
        # bare attribute maps are accepted as well as {"id", "attributes"} envelopes
        attrs = {k: v for k, v in entry.items() if k != "id"}
    merged: Dict[str, Any] = {k: v for k, v in attrs.items() if k != "attributes"}
    custom = attrs.get("attributes")
    if isinstance(custom, Mapping):
        for key, value in custom.items():
            if key in RESERVED_ATTRIBUTES or key in merged:
                continue
            merged[key] = value
    elif custom is not None:
        merged["attributes"] = custom
    record_id = entry.get("id")
    return LogRecord(id=str(record_id) if record_id is not None else f"record-{index}", attributes=merged)


def get_path(attributes: Mapping[str, Any], path: str, default: Any = None) -> Any:
    if not path:
        return default
    value = attributes.get(path, _MISSING)
    if value is not _MISSING:
        return value
    current: Any = attributes
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def has_value(record: LogRecord, path: str) -> bool:
    return record.get(path) not in (None, "")


def is_error(record: LogRecord) -> bool:
    return record.status == "error"


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def epoch_seconds(value: Any) -> Optional[float]:
    parsed = parse_timestamp(value)
    return parsed.timestamp() if parsed is not None else None
