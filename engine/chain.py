"""
Causal chain reconstruction: for the first error in a page, collects the
earlier events sharing its correlation identifier within a lookback window,
orders them, and flags missing steps and sub-second bursts.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import List, Optional, Tuple, Union

from api.responses import CausalChain, ChainAnomaly, ChainStep, NotApplicable
from config import CORRELATION_FIELDS, settings
from engine.classify import classify
from engine.enums import Significance
from engine.errors import MissingRequiredInput
from engine.records import LogRecord, ResultSet, has_value, is_error, parse_timestamp

log = logging.getLogger(__name__)

ANALYSIS = "causal_chain"

_ACK = re.compile(r"acknowledg", re.I)
_FETCH = re.compile(r"fetch|details", re.I)

_RECOMMENDATIONS = {
    "missing_event": "Ensure details are fetched and validated before the acknowledgement is sent.",
    "timing_anomaly": "Add idempotency keys or locking around operations that fire within the same second.",
}
_GENERIC_RECOMMENDATION = "Review the events preceding the error for unexpected state changes or missing steps."


def detect_correlation_field(record: LogRecord) -> Optional[str]:
    for name in CORRELATION_FIELDS:
        if has_value(record, name):
            return name
    return None


def _label(step: ChainStep) -> str:
    return f"{step.event} {step.message}"


def _anomalies(steps: List[ChainStep], times: List[datetime]) -> List[ChainAnomaly]:
    anomalies: List[ChainAnomaly] = []

    for index, step in enumerate(steps):
        if _ACK.search(_label(step)):
            if not any(_FETCH.search(_label(prev)) for prev in steps[:index]):
                anomalies.append(ChainAnomaly(
                    type="missing_event",
                    expected="A fetch of the entity details before the acknowledgement",
                    impact="The acknowledgement was sent without the details being fetched, "
                           "so later steps may have worked on incomplete data",
                    significance=Significance.high,
                ))
            break

    gap = timedelta(seconds=settings.causal_burst_gap_seconds)
    if any(b - a < gap for a, b in zip(times, times[1:])):
        anomalies.append(ChainAnomaly(
            type="timing_anomaly",
            expected="Consecutive events at least one second apart",
            impact="Events fired within the same second, suggesting a race condition or duplicate processing",
            significance=Significance.medium,
        ))
    return anomalies


def _conclusion(steps: List[ChainStep], anomalies: List[ChainAnomaly], field: str, value: str) -> str:
    if anomalies:
        first = anomalies[0]
        return f"Expected {first.expected.lower()}, but it was not observed. {first.impact}."
    if len(steps) <= 1:
        return f"Single event for {field}={value}; no earlier context is available in the lookback window."
    return f"No anomalies detected across {len(steps)} events leading up to the error."


def build_causal_chain(
    result_set: ResultSet,
    correlation_field: Optional[str] = None,
    lookback_minutes: Optional[int] = None,
) -> Union[CausalChain, NotApplicable]:
    if lookback_minutes is None:
        lookback_minutes = settings.causal_lookback_minutes

    target = next((r for r in result_set if is_error(r)), None)
    if target is None:
        return NotApplicable(
            analysis=ANALYSIS,
            message="No error records found; a causal chain needs a target error.",
            suggestion="Add 'status:error' to the query or widen the time range.",
        )

    if correlation_field:
        if not has_value(target, correlation_field):
            raise MissingRequiredInput(
                f"Correlation field '{correlation_field}' is not present on the target error"
            )
    else:
        correlation_field = detect_correlation_field(target)
        if correlation_field is None:
            log.debug("build_causal_chain: no correlation field on target %s", target.id)
            return NotApplicable(
                analysis=ANALYSIS,
                message="The target error carries no correlation identifier.",
                suggestion=f"Pass correlation_field explicitly or log one of {', '.join(CORRELATION_FIELDS)}.",
            )

    error_time = parse_timestamp(target.timestamp)
    if error_time is None:
        return NotApplicable(
            analysis=ANALYSIS,
            message=f"The target error has no parseable timestamp ({target.timestamp!r}).",
            suggestion="Ensure records carry ISO-8601 timestamps.",
        )

    value = str(target.get(correlation_field))
    window_start = error_time - timedelta(minutes=lookback_minutes)

    related: List[Tuple[datetime, LogRecord]] = []
    for record in result_set:
        if str(record.get(correlation_field)) != value:
            continue
        ts = parse_timestamp(record.timestamp)
        if ts is not None and window_start <= ts <= error_time:
            related.append((ts, record))
    related.sort(key=lambda item: item[0])

    steps: List[ChainStep] = []
    for index, (ts, record) in enumerate(related, start=1):
        event = classify(record.attributes)
        steps.append(ChainStep(
            step=index,
            event=event.event_type,
            timestamp=record.timestamp,
            delta_to_error=int((error_time - ts).total_seconds() // 60),
            category=event.category,
            service=record.service,
            message=record.message[: settings.timeline_message_length],
        ))

    anomalies = _anomalies(steps, [ts for ts, _ in related])
    recommendations = list(dict.fromkeys(_RECOMMENDATIONS[a.type] for a in anomalies))

    return CausalChain(
        entity_id=value,
        correlation_field=correlation_field,
        lookback_minutes=lookback_minutes,
        error_timestamp=target.timestamp,
        error_message=target.message[: settings.timeline_message_length],
        chain=steps,
        anomalies=anomalies,
        conclusion=_conclusion(steps, anomalies, correlation_field, value),
        recommendations=recommendations or [_GENERIC_RECOMMENDATION],
    )
