"""
Chronological event timeline with per-record classification, cross-record
pattern detection (error cascades, deployments followed by errors, repeated
errors) and suggested follow-up actions.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List

from api.responses import Timeline, TimelineEntry, TimelinePattern
from config import settings
from engine.classify import classify
from engine.enums import EventCategory
from engine.records import ResultSet


def _entries(result_set: ResultSet) -> List[TimelineEntry]:
    # ISO-8601 strings order lexicographically; sorted() keeps input order on ties
    ordered = sorted(result_set.records, key=lambda r: r.timestamp)
    entries: List[TimelineEntry] = []
    for record in ordered:
        event = classify(record.attributes)
        entries.append(TimelineEntry(
            timestamp=record.timestamp,
            service=record.service,
            status=record.status or None,
            category=event.category,
            event_type=event.event_type,
            confidence=event.confidence,
            message=record.message[: settings.timeline_message_length],
            related_entities=event.related_entities,
        ))
    return entries


def _detect_patterns(entries: List[TimelineEntry]) -> List[TimelinePattern]:
    patterns: List[TimelinePattern] = []
    errors = [e for e in entries if e.category == EventCategory.error]

    error_services = list(dict.fromkeys(e.service for e in errors if e.service))
    if len(error_services) >= 2:
        patterns.append(TimelinePattern(
            type="error_cascade",
            description=f"Errors spread across {len(error_services)} services: {', '.join(error_services)}",
            services=error_services,
            occurrences=len(errors),
        ))

    deploy_pairs = [
        (prev, nxt) for prev, nxt in zip(entries, entries[1:])
        if prev.category == EventCategory.deployment and nxt.category == EventCategory.error
    ]
    if deploy_pairs:
        deploy, error = deploy_pairs[0]
        services = list(dict.fromkeys(s for pair in deploy_pairs for s in (pair[0].service, pair[1].service) if s))
        patterns.append(TimelinePattern(
            type="deploy_then_error",
            description=(
                f"Deployment at {deploy.timestamp} was immediately followed by "
                f"'{error.event_type}' at {error.timestamp}"
            ),
            services=services,
            occurrences=len(deploy_pairs),
        ))

    per_service = Counter(e.service for e in errors if e.service)
    for service in error_services:
        if per_service[service] >= settings.timeline_repeated_errors:
            patterns.append(TimelinePattern(
                type="repeated_errors",
                description=f"Service {service} logged {per_service[service]} errors",
                services=[service],
                occurrences=per_service[service],
            ))
    return patterns


def _suggest(entries: List[TimelineEntry], patterns: List[TimelinePattern], counts: Dict[str, int]) -> List[str]:
    actions: List[str] = []
    if any(p.type == "deploy_then_error" for p in patterns):
        actions.append(
            "A deployment was immediately followed by errors: consider rolling back "
            "and diffing the release against the previous version."
        )

    error_count = counts.get(EventCategory.error.value, 0)
    if error_count > 0:
        first = next(e for e in entries if e.category == EventCategory.error)
        actions.append(
            f"Investigate the root cause of {error_count} error event(s), "
            f"starting with the earliest at {first.timestamp}."
        )
        labels = [e.event_type.lower() for e in entries]
        repeats = settings.timeline_keyword_repeats
        if sum(1 for label in labels if "timeout" in label) > repeats:
            actions.append("Multiple timeouts detected: check downstream latency, connection pools and timeout settings.")
        if sum(1 for label in labels if "connection" in label) > repeats:
            actions.append("Repeated connection errors: verify network reachability and the health of dependencies.")
        if any("trace_id" in e.related_entities for e in entries):
            actions.append("Follow the trace_id values of failing requests across services to locate the origin.")

    if not actions:
        actions.append("No actionable signals found: the logs reflect normal operation.")
    return actions


def build_timeline(result_set: ResultSet) -> Timeline:
    entries = _entries(result_set)
    counts = Counter(e.category.value for e in entries)
    patterns = _detect_patterns(entries)
    return Timeline(
        total_events=len(entries),
        entries=entries,
        category_counts={c.value: counts.get(c.value, 0) for c in EventCategory},
        patterns=patterns,
        suggested_actions=_suggest(entries, patterns, counts),
    )
