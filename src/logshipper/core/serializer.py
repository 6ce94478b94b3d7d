"""
Newline-delimited JSON body for the bulk listener.
"""

import json
import re
from typing import Iterable

from ..models.events import NormalizedEvent

# Unpaired UTF-16 halves survive json.loads but cannot be encoded as UTF-8
LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def _escape_surrogate(match: "re.Match[str]") -> str:
    return f"\\u{ord(match.group()):04x}"


def serialize_event(event: NormalizedEvent) -> str:
    """Compact JSON for one event, keys in model order. Lone surrogates stay ``\\uXXXX`` escapes."""
    line = json.dumps(
        event.model_dump(by_alias=True),
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return LONE_SURROGATE.sub(_escape_surrogate, line)


def serialize_batch(events: Iterable[NormalizedEvent]) -> str:
    """Join events with single newlines. No trailing newline; empty input gives ``""``."""
    return "\n".join(serialize_event(event) for event in events)
