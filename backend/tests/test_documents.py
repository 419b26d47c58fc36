"""Tests for the JSON document helpers."""

from __future__ import annotations

from backend.app.utils.documents import dump_document, load_column, parse_document, parse_payload


def test_parse_document_tolerates_bad_input():
    assert parse_document('{"a": 1}') == {"a": 1}
    assert parse_document("{broken") == {}
    assert parse_document(None) == {}
    assert parse_document("   ") == {}
    assert parse_document("oops", default=[]) == []


def test_parse_payload_wraps_non_objects():
    assert parse_payload(b'{"amount": 42}') == {"amount": 42}
    assert parse_payload(b'"text"') == {"data": "text"}
    assert parse_payload(b"null") == {"data": None}


def test_dump_and_load_column():
    text = dump_document({"b": 2, "a": [1, {"c": None}]})
    assert text == '{"a":[1,{"c":null}],"b":2}'
    assert load_column(text) == {"a": [1, {"c": None}], "b": 2}
    assert load_column(None, default=[]) == []
    assert load_column("not json", default=[]) == []
