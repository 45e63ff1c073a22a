"""
Constants and configuration for logscope.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from typing import Tuple

from pydantic_settings import BaseSettings


LOGSCOPE_HOST = os.getenv("LOGSCOPE_HOST", "0.0.0.0")
LOGSCOPE_PORT = int(os.getenv("LOGSCOPE_PORT", "4323"))
LOGSCOPE_LOG_LEVEL = os.getenv("LOGSCOPE_LOG_LEVEL", "info").lower()

DEFAULT_TIME_RANGE = "1h"

# attributes the upstream store indexes without an "@" prefix
RESERVED_ATTRIBUTES: frozenset = frozenset(
    {"service", "env", "status", "host", "source", "version", "trace_id"}
)

# bulky metadata dropped from records unless the caller asks for it
NOISY_FIELDS: Tuple[str, ...] = ("tags",)

# identifier keys copied verbatim into a classified event's related entities
ENTITY_FIELDS: Tuple[str, ...] = (
    "service",
    "host",
    "trace_id",
    "user_id",
    "transaction_id",
    "request_id",
    "user.id",
)

# auto-detection order for batch grouping
BATCH_FIELDS: Tuple[str, ...] = ("batch_id", "transaction_id", "feed_id", "correlation_id")

# auto-detection order for causal chain correlation
CORRELATION_FIELDS: Tuple[str, ...] = (
    "order_id",
    "trace_id",
    "transaction_id",
    "request_id",
    "correlation_id",
)

# weight values assigned to severity labels for comparison and ranking
SEVERITY_WEIGHTS: dict[str, int] = {
    "low": 1,
    "medium": 2,
    "high": 4,
    "critical": 8,
}


class Settings(BaseSettings):
    host: str = LOGSCOPE_HOST
    port: int = LOGSCOPE_PORT
    log_level: str = LOGSCOPE_LOG_LEVEL

    default_time_range: str = DEFAULT_TIME_RANGE

    # scope analysis
    scope_top_services: int = 5
    scope_confidence_base: float = 0.5
    scope_confidence_large_count: int = 100
    scope_confidence_large_bonus: float = 0.2
    scope_confidence_medium_count: int = 20
    scope_confidence_medium_bonus: float = 0.1
    scope_confidence_multi_service_bonus: float = 0.2
    scope_confidence_long_span_ms: int = 3_600_000
    scope_confidence_long_span_bonus: float = 0.1
    scope_limited_dataset: int = 5
    scope_error_share_critical: float = 0.5
    scope_distributed_services: int = 3

    # summary output format
    summary_top_n: int = 10
    summary_message_length: int = 100

    # timeline
    timeline_message_length: int = 200
    timeline_repeated_errors: int = 3
    timeline_keyword_repeats: int = 2

    # error signatures; thresholds are empirical calibration points
    signature_critical_count: int = 100
    signature_critical_share: float = 0.5
    signature_high_count: int = 50
    signature_high_services: int = 3
    signature_medium_count: int = 10
    signature_confidence_high_count: int = 20
    signature_confidence_medium_count: int = 5
    signature_trend_increasing: float = 1.2
    signature_trend_decreasing: float = 0.8
    signature_sample_length: int = 500

    # field statistics
    field_stats_buckets: int = 10
    field_stats_iqr_multiplier: float = 1.5
    field_stats_outlier_limit: int = 10
    field_stats_extreme_factor: float = 10.0
    field_stats_tail_factor: float = 2.0
    field_stats_confidence_steps: list[Tuple[int, float]] = [
        (100, 0.9),
        (20, 0.7),
        (5, 0.5),
    ]
    field_stats_confidence_floor: float = 0.3

    # batch comparison
    batch_timing_threshold_minutes: float = 5.0
    batch_sample_large: int = 20
    batch_sample_medium: int = 5

    # causal chain
    causal_lookback_minutes: int = 60
    causal_burst_gap_seconds: float = 1.0

    model_config = {
        "env_prefix": "LOGSCOPE_",
        "extra": "ignore",
    }


settings = Settings()
