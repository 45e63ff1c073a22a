"""
Shared utilities for API route modules.

Provides a single place for turning a request body into a normalized result
set and for resolving the query time window, so individual route files stay
thin and avoid repeating boilerplate logic.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from api.requests import LogPageRequest, ScopeRequest
from engine.normalize import normalize_all
from engine.records import ResultSet
from engine.timewindow import TimeWindow, resolve_window


def load_page(req: LogPageRequest) -> ResultSet:
    raw = ResultSet.from_response({"data": req.data, "meta": req.meta})
    return normalize_all(raw, include_tags=req.include_tags)


def window_for(req: ScopeRequest) -> TimeWindow:
    return resolve_window(time_range=req.time_range, from_ms=req.from_ms, to_ms=req.to_ms)
