"""
Response models for API endpoints and internal data structures.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

import numpy as np
from pydantic import BaseModel, Field, model_serializer

from engine.enums import EventCategory, Severity, Significance, Trend


def _coerce(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _coerce(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_coerce(v) for v in obj]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    return obj


class NpModel(BaseModel):

    @model_serializer(mode="wrap")
    def _serialize(self, handler: Any) -> Any:
        return _coerce(handler(self))


class NotApplicable(NpModel):

    status: Literal["not_applicable"] = "not_applicable"
    analysis: str
    message: str
    suggestion: str


class ClassifiedEvent(NpModel):

    category: EventCategory
    event_type: str
    confidence: float = Field(ge=0.0, le=1.0)
    related_entities: Dict[str, Any] = Field(default_factory=dict)


class ScopeReport(NpModel):

    count: int
    time_span_ms: int
    density_per_minute: float
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_service: Dict[str, int] = Field(default_factory=dict)
    top_services: Dict[str, int] = Field(default_factory=dict)
    service_count: int = 0
    error_count: int = 0
    has_more: bool = False
    confidence: float = Field(ge=0.0, le=1.0)
    interpretation: str
    next_suggestion: str


class CountReport(NpModel):

    format: Literal["count"] = "count"
    count: int
    query: str = ""
    time_range: Optional[str] = None
    from_ms: Optional[int] = None
    to_ms: Optional[int] = None
    has_more: bool = False


class FullReport(NpModel):

    format: Literal["full"] = "full"
    count: int
    query: str = ""
    time_range: Optional[str] = None
    from_ms: Optional[int] = None
    to_ms: Optional[int] = None
    data: List[Dict[str, Any]] = Field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False


class SummaryReport(NpModel):

    format: Literal["summary"] = "summary"
    count: int
    query: str = ""
    time_range: Optional[str] = None
    from_ms: Optional[int] = None
    to_ms: Optional[int] = None
    services: Dict[str, int] = Field(default_factory=dict)
    statuses: Dict[str, int] = Field(default_factory=dict)
    top_messages: Dict[str, int] = Field(default_factory=dict)
    has_more: bool = False


class TimelineEntry(NpModel):

    timestamp: str
    service: Optional[str] = None
    status: Optional[str] = None
    category: EventCategory
    event_type: str
    confidence: float = Field(ge=0.0, le=1.0)
    message: str = ""
    related_entities: Dict[str, Any] = Field(default_factory=dict)


class TimelinePattern(NpModel):

    type: str
    description: str
    services: List[str] = Field(default_factory=list)
    occurrences: int = 1


class Timeline(NpModel):

    total_events: int
    entries: List[TimelineEntry] = Field(default_factory=list)
    category_counts: Dict[str, int] = Field(default_factory=dict)
    patterns: List[TimelinePattern] = Field(default_factory=list)
    suggested_actions: List[str] = Field(default_factory=list)


class ErrorSignature(NpModel):

    signature_id: str
    pattern_name: str
    normalized_template: str
    count: int
    severity: Severity
    trend: Trend
    confidence: float = Field(ge=0.0, le=1.0)
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None
    affected_services: List[str] = Field(default_factory=list)
    affected_user_count: int = 0
    example_message: str = ""
    recommendation: str = ""


class DistributionBucket(NpModel):

    range: str
    count: int


class FieldOutlier(NpModel):

    value: float
    timestamp: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


class FieldStatsResult(NpModel):

    field: str
    count: int
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    p95: Optional[float] = None
    p99: Optional[float] = None
    stddev: Optional[float] = None
    distribution: List[DistributionBucket] = Field(default_factory=list)
    outliers: List[FieldOutlier] = Field(default_factory=list)
    outlier_count: int = 0
    interpretation: str
    anomalies_detected: bool = False
    confidence: float = Field(ge=0.0, le=1.0)


class OutcomeMetrics(NpModel):

    count: int
    services: Dict[str, int] = Field(default_factory=dict)
    first_timestamp: Optional[str] = None
    last_timestamp: Optional[str] = None
    time_span_minutes: float = 0.0


class KeyDifference(NpModel):

    attribute: str
    success_value: Any = None
    failure_value: Any = None
    interpretation: str
    significance: Significance


class BatchComparison(NpModel):

    batch_field: str
    batch_id: str
    mixed_batch_count: int = 1
    successful_orders: int
    failed_orders: int
    success_metrics: OutcomeMetrics
    failure_metrics: OutcomeMetrics
    key_differences: List[KeyDifference] = Field(default_factory=list)
    hypothesis: str
    confidence: float = Field(ge=0.0, le=1.0)
    recommendation: str


class ChainStep(NpModel):

    step: int
    event: str
    timestamp: str
    delta_to_error: int
    category: EventCategory
    service: Optional[str] = None
    message: str = ""


class ChainAnomaly(NpModel):

    type: str
    expected: str
    impact: str
    significance: Significance


class CausalChain(NpModel):

    entity_id: str
    correlation_field: str
    lookback_minutes: int
    error_timestamp: str
    error_message: str = ""
    chain: List[ChainStep] = Field(default_factory=list)
    anomalies: List[ChainAnomaly] = Field(default_factory=list)
    conclusion: str
    recommendations: List[str] = Field(default_factory=list)


class Applicability(NpModel):

    has_errors: bool = False
    has_batches: bool = False
    has_correlation_ids: bool = False


class CombinedReport(NpModel):

    applicability: Applicability
    analyses_run: List[str] = Field(default_factory=list)
    error_signatures: List[ErrorSignature] = Field(default_factory=list)
    batch_comparison: Optional[BatchComparison] = None
    causal_chain: Optional[CausalChain] = None
    insights: List[str] = Field(default_factory=list)
    usage_hint: str
