import pytest

from api.responses import BatchComparison, NotApplicable
from engine.batches import compare_batches, detect_batch_field
from engine.enums import Significance
from engine.errors import MissingRequiredInput


def test_late_failure_in_batch_points_at_timing(make_page):
    rs = make_page(
        {"batch_id": "B1", "status": "info", "service": "orders", "timestamp": "2025-01-05T14:00:00Z"},
        {"batch_id": "B1", "status": "info", "service": "orders", "timestamp": "2025-01-05T14:01:00Z"},
        {"batch_id": "B1", "status": "error", "service": "orders", "timestamp": "2025-01-05T14:11:00Z"},
    )
    result = compare_batches(rs)
    assert isinstance(result, BatchComparison)
    assert result.batch_field == "batch_id"
    assert result.batch_id == "B1"
    assert result.successful_orders == 2
    assert result.failed_orders == 1
    timing = result.key_differences[0]
    assert timing.attribute == "timing"
    assert timing.significance == Significance.high
    assert "later" in timing.interpretation
    assert result.hypothesis.startswith("Race condition")
    assert result.confidence == 0.6
    assert result.failure_metrics.first_timestamp == "2025-01-05T14:11:00Z"
    assert result.success_metrics.time_span_minutes == 1.0


def test_failure_only_services_are_reported(make_page):
    rs = make_page(
        {"transaction_id": "T9", "status": "info", "service": "orders"},
        {"transaction_id": "T9", "status": "info", "service": "orders"},
        {"transaction_id": "T9", "status": "error", "service": "billing"},
    )
    result = compare_batches(rs)
    assert [d.attribute for d in result.key_differences] == ["services"]
    assert result.key_differences[0].significance == Significance.medium
    assert "billing" in result.hypothesis


def test_no_difference_falls_back_to_content_hypothesis(make_page):
    rs = make_page(
        {"batch_id": "B1", "status": "info", "service": "orders"},
        {"batch_id": "B1", "status": "error", "service": "orders"},
    )
    result = compare_batches(rs)
    assert result.key_differences == []
    assert result.hypothesis.startswith("No distinguishing attribute")
    assert result.confidence == 0.4


def test_largest_mixed_batch_is_chosen(make_page):
    rs = make_page(
        {"batch_id": "B1", "status": "info"},
        {"batch_id": "B1", "status": "error"},
        {"batch_id": "B2", "status": "info"},
        {"batch_id": "B2", "status": "info"},
        {"batch_id": "B2", "status": "error"},
        {"batch_id": "B3", "status": "info"},
        {"batch_id": "B3", "status": "info"},
        {"batch_id": "B3", "status": "info"},
        {"batch_id": "B3", "status": "info"},
    )
    result = compare_batches(rs)
    assert result.batch_id == "B2"
    assert result.mixed_batch_count == 2


def test_not_applicable_without_batch_field(make_page):
    result = compare_batches(make_page({"status": "error"}, {"status": "info"}))
    assert isinstance(result, NotApplicable)
    assert result.analysis == "batch_comparison"


def test_not_applicable_without_mixed_group(make_page):
    rs = make_page({"batch_id": "B1", "status": "info"}, {"batch_id": "B2", "status": "error"})
    result = compare_batches(rs)
    assert isinstance(result, NotApplicable)


def test_explicit_missing_field_raises(make_page):
    with pytest.raises(MissingRequiredInput):
        compare_batches(make_page({"batch_id": "B1", "status": "error"}), batch_field="feed_id")


def test_detection_follows_field_priority(make_page):
    rs = make_page({"transaction_id": "T1"}, {"batch_id": "B1"})
    assert detect_batch_field(rs.records) == "batch_id"
    assert detect_batch_field(make_page({"status": "info"}).records) is None
