"""
Tests for record normalization: tag stripping and flattening of JSON or XML
documents embedded in log messages.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.normalize import normalize, normalize_all, parse_embedded
from engine.records import LogRecord, ResultSet


def test_tags_are_stripped_unless_requested():
    record = LogRecord(id="1", attributes={"message": "hi", "tags": ["a:b"] * 100})
    assert "tags" not in normalize(record).attributes
    assert normalize(record, include_tags=True).attributes["tags"] == ["a:b"] * 100
    # the source record is left untouched
    assert "tags" in record.attributes


def test_embedded_json_is_flattened_with_arrays_serialized():
    message = 'Order failed payload={"order": {"id": 42, "items": [1, 2]}, "retry": true}'
    flat = parse_embedded(message)
    assert flat["message_parsed.order.id"] == 42
    assert flat["message_parsed.order.items"] == "[1,2]"
    assert flat["message_parsed.retry"] is True


def test_top_level_json_array_becomes_single_value():
    flat = parse_embedded('batch ids: [{"a": 1}, {"a": 2}]')
    assert flat == {"message_parsed": '[{"a":1},{"a":2}]'}


def test_embedded_xml_is_flattened():
    message = 'SOAP fault <fault code="500"><reason>Timeout</reason><detail><id>9</id></detail></fault> received'
    flat = parse_embedded(message)
    assert flat["message_parsed.fault.@code"] == "500"
    assert flat["message_parsed.fault.reason"] == "Timeout"
    assert flat["message_parsed.fault.detail.id"] == "9"


def test_malformed_embedded_data_passes_through():
    record = LogRecord(id="1", attributes={"message": "broken {json: nope", "status": "info"})
    assert normalize(record).attributes == {"message": "broken {json: nope", "status": "info"}
    assert parse_embedded("<open><unclosed></open>") == {}
    assert parse_embedded(None) == {}


def test_json_wins_over_xml():
    flat = parse_embedded('{"kind": "json"} and <kind>xml</kind>')
    assert flat == {"message_parsed.kind": "json"}


def test_normalize_all_keeps_cursor_and_order():
    rs = ResultSet(
        records=(
            LogRecord(id="a", attributes={"message": '{"x": 1}'}),
            LogRecord(id="b", attributes={"message": "plain"}),
        ),
        cursor="next",
    )
    out = normalize_all(rs)
    assert [r.id for r in out] == ["a", "b"]
    assert out.cursor == "next"
    assert out.records[0].get("message_parsed.x") == 1
