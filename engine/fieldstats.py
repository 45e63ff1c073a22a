"""
Numeric field statistics across log records: descriptive statistics,
percentiles, an equal-width histogram, IQR outlier fencing and a textual
interpretation of the distribution.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from api.responses import DistributionBucket, FieldOutlier, FieldStatsResult
from config import settings
from engine.errors import MissingRequiredInput
from engine.records import LogRecord, ResultSet


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        try:
            numeric = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return numeric if math.isfinite(numeric) else None


def extract_values(result_set: ResultSet, field_name: str) -> List[Tuple[float, LogRecord]]:
    values: List[Tuple[float, LogRecord]] = []
    for record in result_set:
        numeric = _to_number(record.get(field_name))
        if numeric is not None:
            values.append((numeric, record))
    return values


def percentile(values: Sequence[float], p: float) -> float:
    """Linear-interpolation percentile: index ``p/100 * (n-1)`` interpolated
    between the neighbouring order statistics."""
    if len(values) == 0:
        raise ValueError("percentile of empty sequence")
    return float(np.percentile(np.asarray(values, dtype=float), p, method="linear"))


def _buckets(arr: np.ndarray) -> List[DistributionBucket]:
    lo, hi = float(arr.min()), float(arr.max())
    if hi == lo:
        return [DistributionBucket(range=f"{lo:g}-{hi:g}", count=int(arr.size))]
    bins = min(settings.field_stats_buckets, int(arr.size))
    # numpy bins are right-open except the last, which includes the maximum
    counts, edges = np.histogram(arr, bins=bins, range=(lo, hi))
    return [
        DistributionBucket(range=f"{edges[i]:.2f}-{edges[i + 1]:.2f}", count=int(counts[i]))
        for i in range(len(counts))
    ]


def _confidence(count: int) -> float:
    for threshold, confidence in settings.field_stats_confidence_steps:
        if count >= threshold:
            return confidence
    return settings.field_stats_confidence_floor


def _interpret(
    field_name: str,
    count: int,
    lo: float,
    hi: float,
    mean: float,
    median: float,
    std: float,
    p99: float,
    outlier_count: int,
    fence: Tuple[float, float],
) -> str:
    parts = [f"Median {field_name} is {median:.2f} (range {lo:.2f} to {hi:.2f} across {count} values)."]
    if std > mean:
        parts.append(f"High variance: standard deviation ({std:.2f}) exceeds the mean ({mean:.2f}).")
    elif std > 0.5 * mean:
        parts.append(f"Moderate variance: standard deviation ({std:.2f}) is over half the mean ({mean:.2f}).")
    if p99 > settings.field_stats_tail_factor * median:
        parts.append(f"Long tail: p99 ({p99:.2f}) is more than twice the median.")
    if outlier_count:
        parts.append(f"{outlier_count} outlier(s) fall outside the IQR fence [{fence[0]:.2f}, {fence[1]:.2f}].")
    if hi > settings.field_stats_extreme_factor * mean:
        parts.append(f"Extreme outlier: maximum ({hi:.2f}) is more than 10x the mean.")
    return " ".join(parts)


def _context(record: LogRecord) -> dict:
    context = {"id": record.id}
    if record.service:
        context["service"] = record.service
    if record.status:
        context["status"] = record.status
    if record.message:
        context["message"] = record.message[: settings.summary_message_length]
    return context


def compute_field_stats(result_set: ResultSet, field_name: str) -> FieldStatsResult:
    if not field_name or not str(field_name).strip():
        raise MissingRequiredInput("field_stats requires a field name")

    pairs = extract_values(result_set, field_name)
    if not pairs:
        return FieldStatsResult(
            field=field_name,
            count=0,
            interpretation=f"No numeric values found for field '{field_name}'.",
            anomalies_detected=False,
            confidence=0.0,
        )

    arr = np.array([v for v, _ in pairs], dtype=float)
    q1, median, q3, p95, p99 = (float(x) for x in np.percentile(arr, [25, 50, 75, 95, 99]))
    lo, hi = float(arr.min()), float(arr.max())
    mean = float(arr.mean())
    std = float(arr.std())

    iqr = q3 - q1
    fence = (
        q1 - settings.field_stats_iqr_multiplier * iqr,
        q3 + settings.field_stats_iqr_multiplier * iqr,
    )
    flagged = [(v, r) for v, r in pairs if v < fence[0] or v > fence[1]]
    flagged.sort(key=lambda item: item[0], reverse=True)
    outliers = [
        FieldOutlier(value=v, timestamp=r.timestamp or None, context=_context(r))
        for v, r in flagged[: settings.field_stats_outlier_limit]
    ]

    anomalies = hi > settings.field_stats_extreme_factor * mean or std > mean or bool(flagged)

    return FieldStatsResult(
        field=field_name,
        count=int(arr.size),
        min=round(lo, 4),
        max=round(hi, 4),
        mean=round(mean, 4),
        median=round(median, 4),
        p95=round(p95, 4),
        p99=round(p99, 4),
        stddev=round(std, 4),
        distribution=_buckets(arr),
        outliers=outliers,
        outlier_count=len(flagged),
        interpretation=_interpret(field_name, int(arr.size), lo, hi, mean, median, std, p99, len(flagged), fence),
        anomalies_detected=anomalies,
        confidence=_confidence(int(arr.size)),
    )
