"""
Time window resolution for log queries: relative ranges such as "15m", "1h"
or "7d", and explicit from/to epoch milliseconds.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from config import settings
from engine.errors import InvalidTimeRange

_RANGE_RE = re.compile(r"^(\d+)([mhdMHD])(?:in|r|ay)?$")

_UNIT_MS = {
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


@dataclass(frozen=True)
class TimeWindow:
    from_ms: int
    to_ms: int
    time_range: Optional[str] = None

    @property
    def span_ms(self) -> int:
        return max(self.to_ms - self.from_ms, 0)


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_time_range(text: str, now: Optional[int] = None) -> Tuple[int, int]:
    match = _RANGE_RE.match(text or "")
    if not match:
        raise InvalidTimeRange(
            'Invalid time_range format. Expected format: "1h", "24h", "7d", "15m", etc.'
        )
    offset = int(match.group(1)) * _UNIT_MS[match.group(2).lower()]
    end = now_ms() if now is None else now
    return end - offset, end


def resolve_window(
    time_range: Optional[str] = None,
    from_ms: Optional[int] = None,
    to_ms: Optional[int] = None,
    now: Optional[int] = None,
) -> TimeWindow:
    default_range = settings.default_time_range
    time_range = time_range or default_range
    explicit = from_ms is not None or to_ms is not None

    if explicit and time_range != default_range:
        raise InvalidTimeRange(
            "Cannot use both time_range and from/to parameters. Use either time_range OR (from + to)."
        )

    if explicit:
        if from_ms is None or to_ms is None:
            raise InvalidTimeRange("Must provide both from and to parameters when using explicit timestamps.")
        start, end, label = int(from_ms), int(to_ms), None
    else:
        start, end = parse_time_range(time_range, now)
        label = time_range

    if start >= end:
        raise InvalidTimeRange('Parameter "from" must be less than "to"')
    return TimeWindow(from_ms=start, to_ms=end, time_range=label)
