"""
Maps raw CloudWatch records onto the listener's event shape.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import List, Union

from ..models.events import NormalizedEvent, RawBatch, RawLogEvent
from .exceptions import DecodeError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_timestamp(epoch_ms: Union[int, float]) -> str:
    """
    Format epoch milliseconds as ISO-8601 UTC, e.g. ``1970-01-01T00:00:00.000Z``.

    Sub-millisecond fractions are truncated.
    """
    if isinstance(epoch_ms, float):
        if not math.isfinite(epoch_ms):
            raise DecodeError(f"Timestamp {epoch_ms!r} is not a finite number", details={"stage": "timestamp"})
        epoch_ms = math.trunc(epoch_ms)

    try:
        moment = EPOCH + timedelta(milliseconds=epoch_ms)
    except OverflowError as e:
        raise DecodeError(
            f"Timestamp {epoch_ms} is out of range",
            details={"stage": "timestamp", "timestamp": epoch_ms},
        ) from e

    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_event(raw: RawLogEvent, log_group: str, log_stream: str) -> NormalizedEvent:
    # A record without a message is forwarded with an empty one
    return NormalizedEvent(
        message=raw.message or "",
        logGroupName=log_group,
        logStreamName=log_stream,
        timestamp=format_timestamp(raw.timestamp),
    )


def normalize_batch(batch: RawBatch) -> List[NormalizedEvent]:
    """Normalize every record of ``batch``, keeping batch order."""
    return [
        normalize_event(raw, batch.log_group, batch.log_stream)
        for raw in batch.log_events
    ]
