"""
Scope analysis for a page of log records: volume and density metrics,
status/service breakdowns, a confidence score and a suggested next step, plus
the "full", "count" and "summary" output formats.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, Optional, Tuple

from api.responses import CountReport, FullReport, ScopeReport, SummaryReport
from config import settings
from engine.records import ResultSet, is_error
from engine.timewindow import TimeWindow


def ranked(counter: Counter, limit: Optional[int] = None) -> Dict[str, int]:
    # Counter keeps first-insertion order and sorted() is stable, so equal
    # counts stay in first-encountered order.
    items = sorted(counter.items(), key=lambda kv: kv[1], reverse=True)
    if limit is not None:
        items = items[:limit]
    return dict(items)


def _count(values: Iterable[Optional[str]]) -> Counter:
    counter: Counter = Counter()
    for value in values:
        if value is not None and value != "":
            counter[str(value)] += 1
    return counter


def _confidence(count: int, service_count: int, time_span_ms: int) -> float:
    confidence = settings.scope_confidence_base
    if count > settings.scope_confidence_large_count:
        confidence += settings.scope_confidence_large_bonus
    elif count > settings.scope_confidence_medium_count:
        confidence += settings.scope_confidence_medium_bonus
    if service_count > 1:
        confidence += settings.scope_confidence_multi_service_bonus
    if time_span_ms > settings.scope_confidence_long_span_ms:
        confidence += settings.scope_confidence_long_span_bonus
    return round(min(confidence, 1.0), 2)


def _suggest(count: int, error_count: int, services: Dict[str, int]) -> Tuple[str, str]:
    if count == 0:
        return (
            "No logs matched the query in this time window.",
            "Broaden the time range (for example 1h to 24h) or relax the query filters.",
        )
    if count < settings.scope_limited_dataset:
        return (
            f"Limited dataset: only {count} log(s) matched, too few to draw conclusions.",
            "Broaden the time range or remove restrictive filters to collect more context.",
        )

    top = next(iter(services), None)
    error_share = error_count / count
    if error_share > settings.scope_error_share_critical:
        pct = round(error_share * 100)
        if len(services) <= 1:
            where = f" in service {top}" if top else ""
            return (
                f"Critical issue: {pct}% of logs are errors, concentrated{where}.",
                f"Cluster error signatures with query 'service:{top} status:error' to find the dominant failure."
                if top else "Cluster error signatures with query 'status:error' to find the dominant failure.",
            )
        return (
            f"Critical issue: {pct}% of logs are errors across {len(services)} services; "
            "this may be a cascading failure.",
            "Build a timeline of 'status:error' across services to find the first failing component.",
        )

    if len(services) == 1:
        return (
            f"Activity is isolated to a single service ({top}).",
            f"Compare against neighbouring services or widen the query beyond 'service:{top}'.",
        )
    if len(services) > settings.scope_distributed_services:
        return (
            f"Distributed activity across {len(services)} services; {top} is the most active.",
            f"Narrow the query with 'service:{top}' or add 'status:error' to focus on failures.",
        )
    return (
        f"Moderate activity: {count} logs with {error_count} error(s).",
        "Add 'status:error' or 'status:warn' to the query to focus on issues.",
    )


def analyze_scope(result_set: ResultSet, time_span_ms: int = 0) -> ScopeReport:
    records = result_set.records
    count = len(records)
    time_span_ms = max(int(time_span_ms or 0), 0)
    minutes = time_span_ms / 60_000
    density = count / minutes if minutes > 0 else 0.0

    by_status = ranked(_count(r.status or None for r in records))
    by_service = ranked(_count(r.service for r in records))
    error_count = sum(1 for r in records if is_error(r))

    interpretation, suggestion = _suggest(count, error_count, by_service)

    return ScopeReport(
        count=count,
        time_span_ms=time_span_ms,
        density_per_minute=density,
        by_status=by_status,
        by_service=by_service,
        top_services=dict(list(by_service.items())[: settings.scope_top_services]),
        service_count=len(by_service),
        error_count=error_count,
        has_more=result_set.has_more,
        confidence=_confidence(count, len(by_service), time_span_ms),
        interpretation=interpretation,
        next_suggestion=suggestion,
    )


def _range_label(window: Optional[TimeWindow]) -> str:
    # explicit from/to windows still report the default relative range
    if window is None or not window.time_range:
        return settings.default_time_range
    return window.time_range


def full_page(result_set: ResultSet, query: str = "", window: Optional[TimeWindow] = None) -> FullReport:
    return FullReport(
        count=len(result_set),
        query=query,
        time_range=_range_label(window),
        from_ms=window.from_ms if window else None,
        to_ms=window.to_ms if window else None,
        data=[{"id": r.id, "attributes": dict(r.attributes)} for r in result_set],
        cursor=result_set.cursor,
        has_more=result_set.has_more,
    )


def count_only(result_set: ResultSet, query: str = "", window: Optional[TimeWindow] = None) -> CountReport:
    return CountReport(
        count=len(result_set),
        query=query,
        time_range=_range_label(window),
        from_ms=window.from_ms if window else None,
        to_ms=window.to_ms if window else None,
        has_more=result_set.has_more,
    )


def summarize(result_set: ResultSet, query: str = "", window: Optional[TimeWindow] = None) -> SummaryReport:
    records = result_set.records
    top_n = settings.summary_top_n
    length = settings.summary_message_length
    messages = _count(r.message[:length] if r.message else None for r in records)
    return SummaryReport(
        count=len(records),
        query=query,
        time_range=_range_label(window),
        from_ms=window.from_ms if window else None,
        to_ms=window.to_ms if window else None,
        services=ranked(_count(r.service for r in records), top_n),
        statuses=ranked(_count(r.status or None for r in records)),
        top_messages=ranked(messages, top_n),
        has_more=result_set.has_more,
    )
