"""
Single-use reporting of an invocation's terminal outcome.
"""

import threading
from typing import Callable, Optional

import structlog

from ..models.outcome import DeliveryOutcome, OutcomeKind
from .exceptions import LogShipperException

logger = structlog.get_logger(__name__)

OutcomeCallback = Callable[[DeliveryOutcome], None]


class CompletionGuard:
    """
    Passes the first outcome to ``callback`` and drops every later one.

    Guards against two code paths (e.g. a credential failure and a late
    transport event) both finishing the same invocation.
    """

    def __init__(self, callback: Optional[OutcomeCallback] = None) -> None:
        self._callback = callback
        self._outcome: Optional[DeliveryOutcome] = None
        self._lock = threading.Lock()

    @property
    def completed(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> Optional[DeliveryOutcome]:
        return self._outcome

    def report(self, outcome: DeliveryOutcome) -> bool:
        """Report ``outcome``; returns False if one was already reported."""
        with self._lock:
            if self._outcome is not None:
                logger.warning(
                    "Outcome already reported, dropping",
                    reported=self._outcome.kind.value,
                    dropped=outcome.kind.value,
                )
                return False
            self._outcome = outcome

        if self._callback is not None:
            self._callback(outcome)
        return True

    def succeed(self, message: str, events_count: int = 0) -> bool:
        return self.report(DeliveryOutcome(OutcomeKind.SUCCESS, message, events_count))

    def fail(self, error: LogShipperException, events_count: int = 0) -> bool:
        return self.report(DeliveryOutcome.from_exception(error, events_count))
