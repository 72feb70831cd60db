"""Tests for record classification and message normalization."""

from datetime import datetime, timezone

import pytest

from ccsearch.records import (
    MessageRecord,
    SessionStartRecord,
    TagsRecord,
    TitleRecord,
    UnrecognizedRecord,
    classify_record,
    content_from_alternate_fields,
    content_from_nested_message,
    flatten_content,
    normalize_record,
    parse_timestamp,
    resolve_role,
    role_from_nested_message,
    role_from_type,
)

FALLBACK = datetime(2025, 1, 1, tzinfo=timezone.utc)


class TestRoleResolution:
    @pytest.mark.parametrize(
        "record_type, role",
        [
            ("human", "user"),
            ("user", "user"),
            ("assistant", "assistant"),
            ("completion", "assistant"),
            ("ai", "assistant"),
            ("summary", "assistant"),
            ("system", "system"),
        ],
    )
    def test_type_field(self, record_type, role):
        assert role_from_type({"type": record_type}) == role

    def test_unknown_type_is_no_match(self):
        assert role_from_type({"type": "progress"}) is None

    def test_type_wins_over_role(self):
        assert resolve_role({"type": "human", "role": "assistant"}) == "user"

    def test_nested_message_role(self):
        assert role_from_nested_message({"message": {"role": "assistant"}}) == "assistant"
        assert resolve_role({"message": {"role": "user", "content": "hi"}}) == "user"

    def test_invalid_role_is_ignored(self):
        assert resolve_role({"role": "tool"}) is None


class TestContentResolution:
    def test_nested_string(self):
        assert content_from_nested_message({"message": {"content": "hello"}}).content == "hello"

    def test_nested_object_with_text(self):
        assert content_from_nested_message({"message": {"content": {"text": "hi"}}}).content == "hi"

    def test_flatten_blocks(self):
        blocks = [
            {"type": "text", "text": "first"},
            "second",
            {"type": "tool_result", "content": [{"type": "text", "text": "third"}]},
            {"type": "tool_use", "input": {"command": "ls"}},
        ]
        assert flatten_content(blocks) == "first\nsecond\nthird"

    def test_flatten_non_content(self):
        assert flatten_content(None) == ""
        assert flatten_content(42) == ""

    def test_alternate_fields(self):
        assert content_from_alternate_fields({"msg": "hey"}).content == "hey"
        assert content_from_alternate_fields({"data": {"nested": True}}) is None


class TestNormalizeRecord:
    def test_human_type_is_user(self):
        msg = normalize_record({"type": "human", "text": "hi"})
        assert msg.role == "user"
        assert msg.content == "hi"

    def test_assistant_type(self):
        msg = normalize_record({"type": "assistant", "message": {"content": [{"type": "text", "text": "ok"}]}})
        assert msg.role == "assistant"
        assert msg.content == "ok"

    def test_content_field_with_role(self):
        msg = normalize_record({"role": "system", "content": "be brief"})
        assert msg.role == "system"
        assert msg.content == "be brief"

    def test_summary_defaults_to_assistant(self):
        msg = normalize_record({"summary": "recap"})
        assert msg.role == "assistant"
        assert msg.content == "recap"

    def test_summary_keeps_explicit_role(self):
        assert normalize_record({"role": "user", "summary": "recap"}).role == "user"

    def test_query_forces_user(self):
        assert normalize_record({"role": "assistant", "query": "find it"}).role == "user"

    def test_response_forces_assistant(self):
        msg = normalize_record({"response": "found it"})
        assert msg.role == "assistant"
        assert msg.content == "found it"

    def test_no_role_is_dropped(self):
        assert normalize_record({"body": "orphan"}) is None
        assert normalize_record({"type": "file-history-snapshot", "files": []}) is None

    def test_non_object_is_dropped(self):
        assert normalize_record(["a", "list"]) is None
        assert normalize_record("text") is None

    def test_empty_message_with_type_is_kept(self):
        msg = normalize_record({"type": "user", "message": {"role": "user", "content": []}})
        assert msg is not None
        assert msg.content == ""

    def test_timestamp_fields_in_order(self):
        msg = normalize_record({
            "type": "user",
            "text": "hi",
            "ts": "2025-03-01T10:00:00Z",
            "created_at": "2024-01-01T00:00:00Z",
        })
        assert msg.timestamp == datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_fallback_timestamp(self):
        assert normalize_record({"type": "user", "text": "hi"}, FALLBACK).timestamp == FALLBACK
        assert normalize_record({"type": "user", "text": "hi"}).timestamp is None


class TestParseTimestamp:
    def test_naive_is_utc(self):
        assert parse_timestamp("2025-01-01T12:00:00") == datetime(2025, 1, 1, 12, tzinfo=timezone.utc)

    def test_epoch_seconds_and_millis(self):
        expected = datetime(2025, 1, 1, tzinfo=timezone.utc)
        seconds = expected.timestamp()
        assert parse_timestamp(seconds) == expected
        assert parse_timestamp(int(seconds * 1000)) == expected

    def test_garbage(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(True) is None
        assert parse_timestamp(None) is None


class TestClassifyRecord:
    def test_session_started(self):
        record = classify_record({"type": "session_started", "session_id": "abc123"})
        assert isinstance(record, SessionStartRecord)
        assert record.session_id == "abc123"

    def test_session_started_camel_case(self):
        record = classify_record({"type": "session_started", "sessionId": "xyz"})
        assert record.session_id == "xyz"

    def test_title_updated(self):
        record = classify_record({"type": "title_updated", "title": "  My title "})
        assert isinstance(record, TitleRecord)
        assert record.title == "My title"

    def test_tags_updated_deduplicates(self):
        record = classify_record({"type": "tags_updated", "tags": ["a", " b", "a", "", 3]})
        assert isinstance(record, TagsRecord)
        assert record.tags == ["a", "b"]

    def test_message(self):
        record = classify_record({"type": "user", "text": "hi"})
        assert isinstance(record, MessageRecord)
        assert record.message.role == "user"

    def test_unrecognized_keeps_payload(self):
        raw = {"type": "progress", "data": {"x": 1}}
        record = classify_record(raw)
        assert isinstance(record, UnrecognizedRecord)
        assert record.raw is raw

    def test_scalar_is_unrecognized(self):
        assert isinstance(classify_record(7), UnrecognizedRecord)
