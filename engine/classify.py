"""
Heuristic event classification: maps a log record's message and status to a
coarse category, a specific event label and a confidence, using an ordered
rule list where the first matching rule wins.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Pattern, Tuple

from config import ENTITY_FIELDS
from engine.enums import EventCategory
from engine.records import get_path
from api.responses import ClassifiedEvent

_DEPLOY = re.compile(r"\b(deploy\w*|release\w*|rollback|rolled back|roll back)\b", re.I)
_START = re.compile(r"\b(start\w*|begin\w*|began|initiat\w*)\b", re.I)
_COMPLETE = re.compile(r"\b(complete\w*|success\w*|finish\w*|done)\b", re.I)
_FAIL = re.compile(r"\b(fail\w*|error\w*|abort\w*)\b", re.I)
_ERROR = re.compile(r"(error|exception|fatal|critical)", re.I)
_TIMEOUT = re.compile(r"time(?:d)?[\s_-]?out", re.I)
_DATABASE = re.compile(r"\b(database|db|sql|postgres\w*|mysql|mongo\w*|redis)\b", re.I)
_CONNECTION = re.compile(r"connect\w*|ECONNREFUSED|ECONNRESET", re.I)
_AUTH = re.compile(r"\b(auth\w*|unauthori[sz]ed|forbidden|permission denied|invalid (?:token|credentials))\b", re.I)
_NOT_FOUND = re.compile(r"not[\s_-]?found|\b404\b", re.I)
_WARN = re.compile(r"\b(warn\w*|deprecat\w*)\b", re.I)
_DEPRECATED = re.compile(r"\bdeprecat\w*", re.I)

ERROR_STATUSES: FrozenSet[str] = frozenset({"error", "critical", "alert", "emergency", "fatal"})
WARN_STATUSES: FrozenSet[str] = frozenset({"warn", "warning"})


@dataclass(frozen=True)
class Rule:
    """One classification rule.

    A rule matches when every pattern in ``requires`` matches the message and,
    if a ``signal`` pattern or ``statuses`` are given, the message matches the
    signal or the record status is one of ``statuses``.
    """

    category: EventCategory
    event_type: str
    confidence: float
    requires: Tuple[Pattern[str], ...] = ()
    signal: Optional[Pattern[str]] = None
    statuses: FrozenSet[str] = frozenset()

    def matches(self, message: str, status: str) -> bool:
        if not all(p.search(message) for p in self.requires):
            return False
        if self.signal is None and not self.statuses:
            return bool(self.requires)
        if self.signal is not None and self.signal.search(message):
            return True
        return status in self.statuses


def _error_rule(event_type: str, confidence: float, *requires: Pattern[str]) -> Rule:
    return Rule(
        EventCategory.error, event_type, confidence,
        requires=requires, signal=_ERROR, statuses=ERROR_STATUSES,
    )


# order matters: deployment rules precede the error rules so that
# "deployment failed" keeps its deployment label
RULES: Tuple[Rule, ...] = (
    Rule(EventCategory.deployment, "Deployment started", 0.9, requires=(_DEPLOY, _START)),
    Rule(EventCategory.deployment, "Deployment completed", 0.9, requires=(_DEPLOY, _COMPLETE)),
    Rule(EventCategory.deployment, "Deployment failed", 0.9, requires=(_DEPLOY, _FAIL)),
    _error_rule("Database timeout", 0.9, _TIMEOUT, _DATABASE),
    _error_rule("Timeout error", 0.9, _TIMEOUT),
    _error_rule("Connection error", 0.9, _CONNECTION),
    _error_rule("Authentication error", 0.9, _AUTH),
    _error_rule("Resource not found", 0.9, _NOT_FOUND),
    _error_rule("Error occurred", 0.7),
    Rule(EventCategory.warning, "Deprecation warning", 0.8, requires=(_DEPRECATED,), signal=_WARN, statuses=WARN_STATUSES),
    Rule(EventCategory.warning, "Warning logged", 0.8, signal=_WARN, statuses=WARN_STATUSES),
    Rule(EventCategory.deployment, "Deployment activity", 0.7, requires=(_DEPLOY,)),
    Rule(EventCategory.info, "Process started", 0.7, requires=(_START,)),
    Rule(EventCategory.info, "Process completed", 0.7, requires=(_COMPLETE,)),
)

DEFAULT_EVENT = (EventCategory.info, "Event logged", 0.5)


def related_entities(attributes: Mapping[str, Any]) -> Dict[str, Any]:
    entities: Dict[str, Any] = {}
    for key in ENTITY_FIELDS:
        value = get_path(attributes, key)
        if value is not None and value != "":
            entities[key] = value
    return entities


def match_rule(message: str, status: str) -> Optional[Rule]:
    for rule in RULES:
        if rule.matches(message, status):
            return rule
    return None


def classify(attributes: Mapping[str, Any]) -> ClassifiedEvent:
    message = attributes.get("message")
    message = "" if message is None else str(message)
    status = str(attributes.get("status") or "").lower()

    rule = match_rule(message, status)
    if rule is None:
        category, event_type, confidence = DEFAULT_EVENT
    else:
        category, event_type, confidence = rule.category, rule.event_type, rule.confidence

    return ClassifiedEvent(
        category=category,
        event_type=event_type,
        confidence=confidence,
        related_entities=related_entities(attributes),
    )
