"""
Tests for newline-delimited batch serialization.
"""

import json

from logshipper.core.serializer import serialize_batch, serialize_event
from logshipper.models.events import NormalizedEvent


def make_event(message: str, timestamp: str = "1970-01-01T00:00:00.000Z") -> NormalizedEvent:
    return NormalizedEvent(message=message, logGroupName="g", logStreamName="s", timestamp=timestamp)


class TestSerializeEvent:
    """Single event JSON."""

    def test_compact_json_in_field_order(self):
        assert serialize_event(make_event("hello")) == (
            '{"message":"hello","logGroupName":"g","logStreamName":"s",'
            '"@timestamp":"1970-01-01T00:00:00.000Z"}'
        )

    def test_keeps_non_ascii(self):
        assert '"message":"café"' in serialize_event(make_event("café"))

    def test_escapes_newlines_in_messages(self):
        line = serialize_event(make_event("first\nsecond"))

        assert "\n" not in line
        assert json.loads(line)["message"] == "first\nsecond"


class TestSerializeBatch:
    """Newline-joined events."""

    def test_joins_with_newlines(self):
        body = serialize_batch([make_event("a"), make_event("b"), make_event("c")])

        lines = body.split("\n")
        assert [json.loads(line)["message"] for line in lines] == ["a", "b", "c"]

    def test_no_trailing_newline(self):
        body = serialize_batch([make_event("a"), make_event("b")])

        assert not body.endswith("\n")
        assert body.count("\n") == 1

    def test_single_event_has_no_newline(self):
        assert "\n" not in serialize_batch([make_event("a")])

    def test_empty_batch_is_empty_string(self):
        assert serialize_batch([]) == ""

    def test_accepts_generators(self):
        body = serialize_batch(make_event(str(i)) for i in range(3))

        assert len(body.split("\n")) == 3


class TestLoneSurrogates:
    """Unpaired UTF-16 halves from the source JSON."""

    def test_lone_surrogate_is_escaped(self):
        line = serialize_event(make_event("\ud800x"))

        assert '"message":"\\ud800x"' in line
        line.encode("utf-8")

    def test_escaped_line_round_trips(self):
        line = serialize_event(make_event("a\udfffb"))

        assert json.loads(line)["message"] == "a\udfffb"

    def test_paired_characters_kept_raw(self):
        assert '"message":"😀"' in serialize_event(make_event("😀"))
