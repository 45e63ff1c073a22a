"""
Error signature clustering: normalizes error messages into templates by
substituting placeholders for volatile tokens, groups records by template hash
and scores each cluster for severity, trend and confidence.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple

from api.responses import ErrorSignature
from config import settings
from engine.enums import Severity, Trend
from engine.records import LogRecord, ResultSet, epoch_seconds, is_error

# applied in order; earlier placeholders protect their digits from later rules
_PLACEHOLDERS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.I), "[UUID]"),
    (re.compile(r"\b(?:https?|wss?|ftp)://[^\s\"'<>]+", re.I), "[URL]"),
    (re.compile(
        r"(?:[A-Za-z]:)?(?:[\\/][\w.\-]+)+\."
        r"(?:py|js|ts|jsx|tsx|php|java|go|rb|rs|cs|cpp|cc|c|h|hpp|kt|scala|swift)\b"
    ), "[PATH]"),
    (re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"), "[IP]"),
    (re.compile(r"\b\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?", re.I), "[TIMESTAMP]"),
    (re.compile(r"(?<!HTTP )(?<!error )(?<!code )(?<!status )\b\d{5,}\b", re.I), "[NUM]"),
)

_DATABASE = re.compile(r"\b(database|db|sql|postgres\w*|mysql|mongo\w*)\b", re.I)
_HTTP = re.compile(r"\bhttps?\b", re.I)
_TIMEOUT = re.compile(r"time(?:d)?[\s_-]?out", re.I)
_CONNECTION = re.compile(r"connect", re.I)
_AUTH = re.compile(r"auth|unauthori[sz]ed|forbidden", re.I)
_NOT_FOUND = re.compile(r"not[\s_-]?found", re.I)

_RECOMMENDATIONS: Dict[str, str] = {
    "Database Connection Timeout": "Check database load, slow queries and connection pool sizing; consider raising the timeout only after fixing latency.",
    "Database Connection Failure": "Verify database availability, credentials and network path; check connection pool exhaustion.",
    "Database Error": "Inspect the failing queries and recent schema or migration changes.",
    "HTTP Timeout Error": "Check latency of the downstream HTTP dependency and tune client timeouts and retries.",
    "HTTP 500 Internal Server Error": "Inspect server-side stack traces for the failing endpoint and recent code changes.",
    "HTTP 404 Not Found": "Verify routes, resource identifiers and client URLs; check for removed endpoints.",
    "HTTP Error": "Inspect request/response details for the failing HTTP calls.",
    "Authentication Failure": "Check credentials, token expiry and identity provider health.",
    "Connection Error": "Verify network connectivity, DNS and the health of the target service.",
    "Timeout Error": "Identify the slow operation and review timeout and retry configuration.",
    "Resource Not Found": "Verify that the referenced resources exist and identifiers are correct.",
}
_GENERIC_RECOMMENDATION = "Review example messages and stack traces for this pattern to identify the failing component."


def normalize_message(message: str) -> str:
    normalized = message or ""
    for pattern, placeholder in _PLACEHOLDERS:
        normalized = pattern.sub(placeholder, normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def template_hash(template: str) -> str:
    return hashlib.md5(template.encode("utf-8")).hexdigest()[:12]


def pattern_name(text: str) -> str:
    lowered = text.lower()
    if _DATABASE.search(lowered):
        if _TIMEOUT.search(lowered):
            return "Database Connection Timeout"
        if _CONNECTION.search(lowered):
            return "Database Connection Failure"
        return "Database Error"
    if _HTTP.search(lowered):
        if _TIMEOUT.search(lowered):
            return "HTTP Timeout Error"
        if "500" in lowered:
            return "HTTP 500 Internal Server Error"
        if "404" in lowered:
            return "HTTP 404 Not Found"
        return "HTTP Error"
    if _AUTH.search(lowered):
        return "Authentication Failure"
    if _CONNECTION.search(lowered):
        return "Connection Error"
    if _TIMEOUT.search(lowered):
        return "Timeout Error"
    if _NOT_FOUND.search(lowered):
        return "Resource Not Found"
    return "Error Pattern"


def severity_for(count: int, total_count: int, service_count: int) -> Severity:
    if count > settings.signature_critical_count or (
        total_count > 0 and count > total_count * settings.signature_critical_share
    ):
        return Severity.critical
    if count > settings.signature_high_count or service_count > settings.signature_high_services:
        return Severity.high
    if count > settings.signature_medium_count:
        return Severity.medium
    return Severity.low


def trend_for(timestamps: List[float]) -> Trend:
    if len(timestamps) < 2:
        return Trend.stable
    start, end = min(timestamps), max(timestamps)
    if end <= start:
        return Trend.stable
    midpoint = start + (end - start) / 2
    first = sum(1 for t in timestamps if t < midpoint)
    second = len(timestamps) - first
    # both halves span the same duration, so counts compare as densities
    if first == 0:
        return Trend.increasing
    if second > first * settings.signature_trend_increasing:
        return Trend.increasing
    if second < first * settings.signature_trend_decreasing:
        return Trend.decreasing
    return Trend.stable


def confidence_for(count: int) -> float:
    if count > settings.signature_confidence_high_count:
        return 0.9
    if count > settings.signature_confidence_medium_count:
        return 0.7
    return 0.5


def recommendation_for(name: str, severity: Severity, service_count: int) -> str:
    text = _RECOMMENDATIONS.get(name, _GENERIC_RECOMMENDATION)
    if severity == Severity.critical:
        text = f"CRITICAL: {text}"
    if service_count > settings.signature_high_services:
        text = f"{text} This pattern affects {service_count} services; look for a shared dependency."
    return text


def error_message(record: LogRecord) -> str:
    if record.message:
        return record.message
    error = record.attributes.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("kind") or "")
    return "" if error is None else str(error)


def _user_id(record: LogRecord) -> Optional[Any]:
    for key in ("user_id", "user.id", "usr.id"):
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass
class _Cluster:
    template: str
    records: List[LogRecord] = field(default_factory=list)
    timestamps: List[str] = field(default_factory=list)
    seconds: List[float] = field(default_factory=list)
    services: Dict[str, None] = field(default_factory=dict)
    users: Dict[str, None] = field(default_factory=dict)
    sample: str = ""


def cluster_errors(result_set: ResultSet) -> List[ErrorSignature]:
    errors = [r for r in result_set if is_error(r) or "error" in r.attributes]
    total = len(errors)
    clusters: Dict[str, _Cluster] = {}

    for record in errors:
        message = error_message(record)
        template = normalize_message(message)
        key = template_hash(template)
        cluster = clusters.setdefault(key, _Cluster(template=template))
        cluster.records.append(record)
        if not cluster.sample:
            cluster.sample = message[: settings.signature_sample_length]
        if record.timestamp:
            cluster.timestamps.append(record.timestamp)
            seconds = epoch_seconds(record.timestamp)
            if seconds is not None:
                cluster.seconds.append(seconds)
        if record.service:
            cluster.services[record.service] = None
        user = _user_id(record)
        if user is not None:
            cluster.users[str(user)] = None

    signatures: List[ErrorSignature] = []
    for key, cluster in clusters.items():
        count = len(cluster.records)
        service_count = len(cluster.services)
        # placeholders remove keywords such as "http" from URLs, so match the raw sample
        name = pattern_name(cluster.sample or cluster.template)
        severity = severity_for(count, total, service_count)
        signatures.append(ErrorSignature(
            signature_id=key,
            pattern_name=name,
            normalized_template=cluster.template,
            count=count,
            severity=severity,
            trend=trend_for(cluster.seconds),
            confidence=confidence_for(count),
            first_seen=min(cluster.timestamps) if cluster.timestamps else None,
            last_seen=max(cluster.timestamps) if cluster.timestamps else None,
            affected_services=sorted(cluster.services),
            affected_user_count=len(cluster.users),
            example_message=cluster.sample,
            recommendation=recommendation_for(name, severity, service_count),
        ))

    signatures.sort(key=lambda s: s.count, reverse=True)
    return signatures
