from engine.enums import EventCategory
from engine.timeline import build_timeline


def _types(timeline):
    return [p.type for p in timeline.patterns]


def test_entries_sorted_and_truncated(make_record):
    from engine.records import ResultSet

    rs = ResultSet(records=(
        make_record(5, message="later", service="api"),
        make_record(1, message="y" * 300, service="api"),
        make_record(3, message="middle", service="api"),
    ))
    timeline = build_timeline(rs)
    assert [e.timestamp for e in timeline.entries] == sorted(e.timestamp for e in timeline.entries)
    assert len(timeline.entries[0].message) == 200
    assert timeline.total_events == 3


def test_error_cascade_and_repeated_errors(make_page):
    rs = make_page(
        {"status": "error", "service": "api", "message": "boom"},
        {"status": "error", "service": "api", "message": "boom"},
        {"status": "error", "service": "db", "message": "boom"},
        {"status": "error", "service": "api", "message": "boom"},
    )
    timeline = build_timeline(rs)
    assert _types(timeline) == ["error_cascade", "repeated_errors"]
    cascade = timeline.patterns[0]
    assert cascade.services == ["api", "db"]
    assert timeline.patterns[1].services == ["api"]
    assert timeline.patterns[1].occurrences == 3
    assert timeline.category_counts[EventCategory.error.value] == 4


def test_deploy_followed_by_error_triggers_rollback(make_page):
    rs = make_page(
        {"message": "Deployment started v3", "service": "api"},
        {"message": "Unhandled exception", "status": "error", "service": "api"},
    )
    timeline = build_timeline(rs)
    assert "deploy_then_error" in _types(timeline)
    assert any("rolling back" in a for a in timeline.suggested_actions)
    assert any("root cause of 1 error" in a for a in timeline.suggested_actions)


def test_exception_class_names_count_as_errors(make_page):
    rs = make_page(
        {"message": "Deployment started v4", "service": "api"},
        {"message": "java.lang.NullPointerException at OrderHandler", "service": "api"},
    )
    timeline = build_timeline(rs)
    assert timeline.entries[1].category == EventCategory.error
    assert "deploy_then_error" in _types(timeline)


def test_deploy_not_adjacent_to_error_is_not_flagged(make_page):
    rs = make_page(
        {"message": "Deployment completed", "service": "api"},
        {"message": "Worker started", "service": "api"},
        {"message": "Unhandled exception", "status": "error", "service": "api"},
    )
    assert "deploy_then_error" not in _types(build_timeline(rs))


def test_keyword_repeats_and_tracing_suggestions(make_page):
    rs = make_page(*[
        {"message": "request timeout", "status": "error", "service": "api", "trace_id": f"t{i}"}
        for i in range(3)
    ])
    actions = build_timeline(rs).suggested_actions
    assert any("Multiple timeouts" in a for a in actions)
    assert not any("connection errors" in a for a in actions)
    assert any("trace_id" in a for a in actions)


def test_two_timeouts_are_not_enough(make_page):
    rs = make_page(*[{"message": "request timeout", "status": "error"} for _ in range(2)])
    assert not any("Multiple timeouts" in a for a in build_timeline(rs).suggested_actions)


def test_normal_operation_message(make_page):
    rs = make_page({"message": "Worker started"}, {"message": "Job completed"})
    timeline = build_timeline(rs)
    assert timeline.patterns == []
    assert timeline.suggested_actions == ["No actionable signals found: the logs reflect normal operation."]
