from engine.dispatcher import analyze_auto


def test_no_errors_runs_nothing(make_page):
    report = analyze_auto(make_page({"message": "ok", "batch_id": "B1", "order_id": "O1"}))
    assert report.applicability.has_errors is False
    assert report.applicability.has_batches is True
    assert report.analyses_run == []
    assert report.insights == []
    assert report.usage_hint.startswith("No analyses ran")


def test_signatures_only_suggests_richer_fields(make_page):
    report = analyze_auto(make_page({"message": "boom", "status": "error"}, {"message": "boom", "status": "error"}))
    assert report.analyses_run == ["error_signatures"]
    assert report.error_signatures[0].count == 2
    assert report.batch_comparison is None
    assert report.causal_chain is None
    assert "only" in report.usage_hint
    assert report.insights[0].startswith("Top error signature")


def test_all_analyses_run_in_order(make_page):
    rs = make_page(
        {"batch_id": "B1", "order_id": "O1", "message": "Order received", "timestamp": "2025-01-05T14:00:00Z"},
        {"batch_id": "B1", "order_id": "O1", "message": "Order acknowledged", "timestamp": "2025-01-05T14:01:00Z"},
        {"batch_id": "B1", "order_id": "O1", "message": "Payment failed", "status": "error",
         "timestamp": "2025-01-05T14:12:00Z"},
    )
    report = analyze_auto(rs)
    assert report.analyses_run == ["error_signatures", "batch_comparison", "causal_chain"]
    assert report.batch_comparison.batch_id == "B1"
    assert report.causal_chain.entity_id == "O1"
    assert report.insights[0].startswith("Batch B1")
    assert report.insights[1].startswith("Causal chain for order_id=O1")
    assert report.insights[2].startswith("Top error signature")


def test_correlation_is_probed_on_first_record_only(make_page):
    rs = make_page(
        {"message": "started"},
        {"order_id": "O1", "message": "Payment failed", "status": "error"},
    )
    report = analyze_auto(rs)
    assert report.applicability.has_correlation_ids is False
    assert "causal_chain" not in report.analyses_run


def test_explicit_correlation_missing_on_target_is_skipped(make_page):
    rs = make_page(
        {"trace_id": "t1", "message": "started"},
        {"message": "Payment failed", "status": "error"},
    )
    report = analyze_auto(rs, correlation_field="trace_id")
    assert report.applicability.has_correlation_ids is True
    assert report.analyses_run == ["error_signatures"]
    assert report.causal_chain is None


def test_unmixed_batches_are_skipped(make_page):
    rs = make_page(
        {"batch_id": "B1", "message": "boom", "status": "error"},
        {"batch_id": "B2", "message": "ok"},
    )
    report = analyze_auto(rs)
    assert report.applicability.has_batches is True
    assert "batch_comparison" not in report.analyses_run
