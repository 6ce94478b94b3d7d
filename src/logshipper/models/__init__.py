"""
Pydantic data models package.

Contains:
- CloudWatch Logs batch and normalized event models
- Invocation outcome
- HTTP API request/response models
"""

from .api import ErrorResponse, ForwardRequest, ForwardResponse
from .events import NormalizedEvent, RawBatch, RawLogEvent
from .outcome import DeliveryOutcome, OutcomeKind

__all__ = [
    # Batch models
    "RawLogEvent",
    "RawBatch",
    "NormalizedEvent",

    # Outcome
    "DeliveryOutcome",
    "OutcomeKind",

    # API models
    "ForwardRequest",
    "ForwardResponse",
    "ErrorResponse",
]
