"""
Decoding of CloudWatch Logs subscription payloads.

base64 -> gzip -> UTF-8 JSON -> RawBatch. Any failure rejects the whole
payload; there is no partial-batch recovery.
"""

import base64
import binascii
import gzip
import json
import zlib
from typing import Any, Mapping, Union

import structlog
from pydantic import ValidationError

from ..models.events import RawBatch
from .exceptions import DecodeError

logger = structlog.get_logger(__name__)


def extract_awslogs_data(event: Any) -> str:
    """Return the compressed payload carried by a subscription event."""
    if not isinstance(event, Mapping):
        raise DecodeError("Invocation event is not an object", details={"stage": "event"})

    awslogs = event.get("awslogs")
    if not isinstance(awslogs, Mapping) or not isinstance(awslogs.get("data"), str):
        raise DecodeError("Invocation event has no awslogs.data payload", details={"stage": "event"})

    return awslogs["data"]


def decode_payload(data: Union[str, bytes]) -> RawBatch:
    """
    Decode a compressed subscription payload.

    Raises:
        DecodeError: with ``details["stage"]`` naming the step that failed
    """
    try:
        compressed = base64.b64decode(data)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Payload is not valid base64: {e}", details={"stage": "base64"}) from e

    try:
        raw = gzip.decompress(compressed)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"Payload could not be decompressed: {e}", details={"stage": "gunzip"}) from e

    try:
        text = raw.decode("utf-8")
        document = json.loads(text)
    except UnicodeDecodeError as e:
        raise DecodeError(f"Payload is not UTF-8 text: {e}", details={"stage": "json"}) from e
    except json.JSONDecodeError as e:
        raise DecodeError(f"Payload is not valid JSON: {e}", details={"stage": "json"}) from e

    try:
        batch = RawBatch.model_validate(document)
    except ValidationError as e:
        raise DecodeError(
            "Payload does not have the expected shape",
            details={"stage": "schema", "errors": e.errors(include_url=False, include_context=False)},
        ) from e

    logger.debug(
        "Payload decoded",
        log_group=batch.log_group,
        log_stream=batch.log_stream,
        events_count=len(batch.log_events),
    )
    return batch
