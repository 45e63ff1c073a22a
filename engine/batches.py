"""
Batch outcome comparison: groups records by a shared batch or transaction
identifier, picks the largest batch containing both successes and failures,
and derives the differences that best explain the split.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence, Union

from api.responses import BatchComparison, KeyDifference, NotApplicable, OutcomeMetrics
from config import BATCH_FIELDS, settings
from engine.enums import Significance
from engine.errors import MissingRequiredInput
from engine.records import LogRecord, ResultSet, epoch_seconds, has_value, is_error
from engine.scope import ranked

log = logging.getLogger(__name__)

ANALYSIS = "batch_comparison"


def detect_batch_field(records: Sequence[LogRecord]) -> Optional[str]:
    for name in BATCH_FIELDS:
        if any(has_value(r, name) for r in records):
            return name
    return None


def _metrics(records: List[LogRecord]) -> OutcomeMetrics:
    timestamps = sorted(r.timestamp for r in records if r.timestamp)
    seconds = [s for s in (epoch_seconds(t) for t in timestamps) if s is not None]
    span = (max(seconds) - min(seconds)) / 60 if seconds else 0.0
    return OutcomeMetrics(
        count=len(records),
        services=ranked(Counter(r.service for r in records if r.service)),
        first_timestamp=timestamps[0] if timestamps else None,
        last_timestamp=timestamps[-1] if timestamps else None,
        time_span_minutes=round(span, 2),
    )


def _mean_seconds(records: List[LogRecord]) -> Optional[float]:
    seconds = [s for s in (epoch_seconds(r.timestamp) for r in records) if s is not None]
    return sum(seconds) / len(seconds) if seconds else None


def _differences(success: List[LogRecord], failure: List[LogRecord]) -> List[KeyDifference]:
    differences: List[KeyDifference] = []

    success_mean, failure_mean = _mean_seconds(success), _mean_seconds(failure)
    if success_mean is not None and failure_mean is not None:
        delta = (failure_mean - success_mean) / 60
        if abs(delta) > settings.batch_timing_threshold_minutes:
            direction = "later" if delta > 0 else "earlier"
            differences.append(KeyDifference(
                attribute="timing",
                success_value=round(success_mean, 3),
                failure_value=round(failure_mean, 3),
                interpretation=f"Failures occurred {abs(delta):.1f} minutes {direction} than successes",
                significance=Significance.high,
            ))

    success_services = list(dict.fromkeys(r.service for r in success if r.service))
    failure_services = list(dict.fromkeys(r.service for r in failure if r.service))
    extra = [s for s in failure_services if s not in success_services]
    if extra:
        differences.append(KeyDifference(
            attribute="services",
            success_value=success_services,
            failure_value=failure_services,
            interpretation=f"Failures involve services absent from successful records: {', '.join(extra)}",
            significance=Significance.medium,
        ))
    return differences


def _hypothesis(differences: List[KeyDifference]) -> tuple[str, str]:
    if not differences:
        return (
            "No distinguishing attribute separates failed from successful records; "
            "the failure likely depends on record content.",
            "Compare the payloads of failed and successful records in this batch.",
        )
    top = differences[0]
    if top.attribute == "timing":
        return (
            f"Race condition or time-dependent failure: {top.interpretation.lower()}.",
            "Check ordering guarantees, locking and retry behaviour for operations in this batch.",
        )
    if top.attribute == "services":
        services = [s for s in top.failure_value if s not in top.success_value]
        return (
            f"Service involvement: failures pass through {', '.join(services)}, which successful records never touch.",
            f"Inspect the logs of {', '.join(services)} for the failing records.",
        )
    return (
        f"Outcome differs on {top.attribute}: {top.interpretation}.",
        "Investigate the distinguishing attribute for the failed records.",
    )


def _confidence(sample: int, difference_count: int) -> float:
    if sample > settings.batch_sample_large:
        sample_term = 0.9
    elif sample > settings.batch_sample_medium:
        sample_term = 0.7
    else:
        sample_term = 0.5
    if difference_count > 2:
        difference_term = 0.9
    elif difference_count:
        difference_term = 0.7
    else:
        difference_term = 0.3
    return round((sample_term + difference_term) / 2, 2)


def compare_batches(
    result_set: ResultSet,
    batch_field: Optional[str] = None,
) -> Union[BatchComparison, NotApplicable]:
    records = result_set.records
    if batch_field:
        if not any(has_value(r, batch_field) for r in records):
            raise MissingRequiredInput(f"Batch field '{batch_field}' is not present on any record")
    else:
        batch_field = detect_batch_field(records)
        if batch_field is None:
            log.debug("compare_batches: no batch field detected")
            return NotApplicable(
                analysis=ANALYSIS,
                message="No batch identifier found on the records.",
                suggestion=f"Pass batch_field explicitly or include one of {', '.join(BATCH_FIELDS)} in the logs.",
            )

    groups: Dict[str, List[LogRecord]] = {}
    for record in records:
        value = record.get(batch_field)
        if value in (None, ""):
            continue
        groups.setdefault(str(value), []).append(record)

    mixed = [
        (batch_id, members) for batch_id, members in groups.items()
        if any(is_error(r) for r in members) and any(not is_error(r) for r in members)
    ]
    if not mixed:
        log.debug("compare_batches: %d batch(es) on %s, none mixed", len(groups), batch_field)
        return NotApplicable(
            analysis=ANALYSIS,
            message=f"No {batch_field} group contains both successful and failed records.",
            suggestion="Widen the time range so that successes and failures of the same batch are both included.",
        )

    # max() returns the first of equally sized groups
    batch_id, members = max(mixed, key=lambda item: len(item[1]))
    success = [r for r in members if not is_error(r)]
    failure = [r for r in members if is_error(r)]

    differences = _differences(success, failure)
    hypothesis, recommendation = _hypothesis(differences)

    return BatchComparison(
        batch_field=batch_field,
        batch_id=batch_id,
        mixed_batch_count=len(mixed),
        successful_orders=len(success),
        failed_orders=len(failure),
        success_metrics=_metrics(success),
        failure_metrics=_metrics(failure),
        key_differences=differences,
        hypothesis=hypothesis,
        confidence=_confidence(min(len(success), len(failure)), len(differences)),
        recommendation=recommendation,
    )
