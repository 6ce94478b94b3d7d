"""
Tests for record normalization and timestamp formatting.
"""

import pytest

from logshipper.core.exceptions import DecodeError
from logshipper.core.normalizer import format_timestamp, normalize_batch, normalize_event
from logshipper.models.events import RawBatch, RawLogEvent


class TestFormatTimestamp:
    """Epoch milliseconds -> ISO-8601 with millisecond precision."""

    @pytest.mark.parametrize("epoch_ms,expected", [
        (0, "1970-01-01T00:00:00.000Z"),
        (1700000000123, "2023-11-14T22:13:20.123Z"),
        (1, "1970-01-01T00:00:00.001Z"),
        (-1, "1969-12-31T23:59:59.999Z"),
        (253402300799999, "9999-12-31T23:59:59.999Z"),
    ])
    def test_formats(self, epoch_ms, expected):
        assert format_timestamp(epoch_ms) == expected

    def test_truncates_fractional_milliseconds(self):
        assert format_timestamp(1.9) == "1970-01-01T00:00:00.001Z"
        assert format_timestamp(1700000000123.7) == "2023-11-14T22:13:20.123Z"

    @pytest.mark.parametrize("epoch_ms", [10 ** 17, -(10 ** 17), 253402300800000])
    def test_out_of_range(self, epoch_ms):
        with pytest.raises(DecodeError) as exc_info:
            format_timestamp(epoch_ms)
        assert exc_info.value.details["stage"] == "timestamp"

    @pytest.mark.parametrize("epoch_ms", [float("nan"), float("inf")])
    def test_not_finite(self, epoch_ms):
        with pytest.raises(DecodeError):
            format_timestamp(epoch_ms)


class TestNormalizeEvent:
    """One raw record in, one normalized event out."""

    def test_maps_fields(self):
        event = normalize_event(RawLogEvent(message="hello", timestamp=0), "g", "s")

        assert event.message == "hello"
        assert event.logGroupName == "g"
        assert event.logStreamName == "s"
        assert event.timestamp == "1970-01-01T00:00:00.000Z"

    def test_missing_message_becomes_empty(self):
        event = normalize_event(RawLogEvent(timestamp=0), "g", "s")

        assert event.message == ""

    def test_message_kept_verbatim(self):
        message = "  multi\nline\twith \"quotes\"  "

        event = normalize_event(RawLogEvent(message=message, timestamp=0), "g", "s")

        assert event.message == message


class TestNormalizeBatch:
    """Whole-batch mapping."""

    def test_preserves_order_and_count(self):
        batch = RawBatch(
            logGroup="g",
            logStream="s",
            logEvents=[RawLogEvent(message=str(i), timestamp=i) for i in range(50)],
        )

        events = normalize_batch(batch)

        assert [e.message for e in events] == [str(i) for i in range(50)]
        assert all(e.logGroupName == "g" and e.logStreamName == "s" for e in events)

    def test_empty_batch(self):
        batch = RawBatch(logGroup="g", logStream="s", logEvents=[])

        assert normalize_batch(batch) == []

    def test_bad_timestamp_fails_batch(self):
        batch = RawBatch(
            logGroup="g",
            logStream="s",
            logEvents=[
                RawLogEvent(message="ok", timestamp=0),
                RawLogEvent(message="bad", timestamp=10 ** 17),
            ],
        )

        with pytest.raises(DecodeError):
            normalize_batch(batch)
