"""
Terminal result of one forwarding invocation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.exceptions import LogShipperException


class OutcomeKind(str, Enum):
    """Kinds of terminal outcome."""

    SUCCESS = "success"
    DECODE_FAILURE = "decode_failure"
    CREDENTIAL_FAILURE = "credential_failure"
    CREDENTIAL_TIMEOUT = "credential_timeout"
    TRANSPORT_FAILURE = "transport_failure"
    MALFORMED_RESPONSE = "malformed_response"
    INTERNAL_ERROR = "internal_error"


@dataclass
class DeliveryOutcome:
    """Exactly one of these is produced per invocation."""
    kind: OutcomeKind
    message: str
    events_count: int = 0
    error: Optional[LogShipperException] = None

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def from_exception(cls, exc: LogShipperException, events_count: int = 0) -> "DeliveryOutcome":
        try:
            kind = OutcomeKind(exc.error_code)
        except ValueError:
            kind = OutcomeKind.INTERNAL_ERROR
        return cls(kind=kind, message=str(exc), events_count=events_count, error=exc)
