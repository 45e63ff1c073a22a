"""
Tests for causal chain reconstruction around the first error of a page.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from api.responses import CausalChain, NotApplicable
from engine.chain import build_causal_chain, detect_correlation_field
from engine.enums import EventCategory, Significance
from engine.errors import MissingRequiredInput


def _ts(minute, second="00"):
    return f"2025-01-05T14:{minute:02d}:{second}Z"


def test_acknowledgement_without_fetch_is_flagged(make_page):
    rs = make_page(
        {"order_id": "O1", "message": "Order received", "timestamp": _ts(0)},
        {"order_id": "O2", "message": "Order received", "timestamp": _ts(3)},
        {"order_id": "O1", "message": "Order acknowledged", "timestamp": _ts(5)},
        {"order_id": "O1", "message": "Payment failed", "status": "error", "timestamp": _ts(10)},
    )
    chain = build_causal_chain(rs)
    assert isinstance(chain, CausalChain)
    assert chain.correlation_field == "order_id"
    assert chain.entity_id == "O1"
    assert [s.delta_to_error for s in chain.chain] == [10, 5, 0]
    assert [s.step for s in chain.chain] == [1, 2, 3]
    assert chain.chain[-1].category == EventCategory.error
    assert [a.type for a in chain.anomalies] == ["missing_event"]
    assert chain.anomalies[0].significance == Significance.high
    assert chain.conclusion.startswith("Expected a fetch")
    assert len(chain.recommendations) == 1
    assert "fetched" in chain.recommendations[0]


def test_clean_chain_gets_generic_recommendation(make_page):
    rs = make_page(
        {"order_id": "O1", "message": "Order received", "timestamp": _ts(0)},
        {"order_id": "O1", "message": "Fetched order details", "timestamp": _ts(2)},
        {"order_id": "O1", "message": "Order acknowledged", "timestamp": _ts(5)},
        {"order_id": "O1", "message": "Payment failed", "status": "error", "timestamp": _ts(10)},
    )
    chain = build_causal_chain(rs)
    assert chain.anomalies == []
    assert chain.conclusion == "No anomalies detected across 4 events leading up to the error."
    assert chain.recommendations[0].startswith("Review the events preceding the error")


def test_chain_is_ordered_even_when_page_is_not(make_page):
    rs = make_page(
        {"trace_id": "t1", "message": "Payment failed", "status": "error", "timestamp": _ts(30)},
        {"trace_id": "t1", "message": "step b", "timestamp": _ts(20)},
        {"trace_id": "t1", "message": "step a", "timestamp": _ts(5)},
    )
    chain = build_causal_chain(rs)
    stamps = [s.timestamp for s in chain.chain]
    deltas = [s.delta_to_error for s in chain.chain]
    assert stamps == sorted(stamps)
    assert deltas == sorted(deltas, reverse=True)
    assert all(d >= 0 for d in deltas)


def test_lookback_window_limits_chain(make_page):
    rs = make_page(
        {"order_id": "O1", "message": "Order received", "timestamp": "2025-01-05T12:00:00Z"},
        {"order_id": "O1", "message": "Payment failed", "status": "error", "timestamp": _ts(10)},
        {"order_id": "O1", "message": "Retry scheduled", "timestamp": _ts(20)},
    )
    assert len(build_causal_chain(rs).chain) == 1
    wide = build_causal_chain(rs, lookback_minutes=180)
    assert len(wide.chain) == 2
    assert wide.chain[0].delta_to_error == 130
    assert wide.lookback_minutes == 180


def test_single_timing_anomaly_for_burst(make_page):
    rs = make_page(
        {"order_id": "O1", "message": "charge", "timestamp": "2025-01-05T14:00:00.000Z"},
        {"order_id": "O1", "message": "charge", "timestamp": "2025-01-05T14:00:00.200Z"},
        {"order_id": "O1", "message": "charge", "timestamp": "2025-01-05T14:00:00.400Z"},
        {"order_id": "O1", "message": "double charge", "status": "error", "timestamp": "2025-01-05T14:00:00.500Z"},
    )
    chain = build_causal_chain(rs)
    assert [a.type for a in chain.anomalies] == ["timing_anomaly"]
    assert chain.anomalies[0].significance == Significance.medium


def test_single_event_conclusion(make_page):
    chain = build_causal_chain(make_page({"order_id": "O7", "message": "boom", "status": "error"}))
    assert len(chain.chain) == 1
    assert chain.conclusion.startswith("Single event for order_id=O7")


def test_not_applicable_without_errors(make_page):
    result = build_causal_chain(make_page({"order_id": "O1", "message": "fine"}))
    assert isinstance(result, NotApplicable)
    assert result.analysis == "causal_chain"


def test_not_applicable_without_correlation_id(make_page):
    result = build_causal_chain(make_page({"message": "boom", "status": "error"}))
    assert isinstance(result, NotApplicable)


def test_explicit_field_missing_on_target_raises(make_page):
    rs = make_page({"trace_id": "t1", "message": "boom", "status": "error"})
    with pytest.raises(MissingRequiredInput):
        build_causal_chain(rs, correlation_field="order_id")


def test_detection_prefers_earlier_fields(make_page):
    record = make_page({"trace_id": "t1", "order_id": "O1"}).records[0]
    assert detect_correlation_field(record) == "order_id"
