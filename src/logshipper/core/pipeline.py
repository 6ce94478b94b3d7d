"""
Forwarding pipeline.

Orchestrates one invocation:
1. Extract and decode the compressed payload
2. Normalize every record
3. Serialize the batch
4. Deliver it once the customer token is ready
5. Report exactly one outcome
"""

import time
from dataclasses import dataclass
from typing import Any, List, Optional, Union

import structlog

from ..models.events import NormalizedEvent, RawBatch
from ..models.outcome import DeliveryOutcome, OutcomeKind
from .completion import CompletionGuard
from .decoder import decode_payload, extract_awslogs_data
from .delivery import DeliveryAttempt, DeliveryEngine
from .exceptions import LogShipperException
from .metrics import MetricsCollector
from .normalizer import normalize_batch
from .serializer import serialize_batch

logger = structlog.get_logger(__name__)

SUCCESS_MESSAGE = "all events are sent to the log endpoint"


@dataclass
class PreparedBatch:
    """Decoded, normalized and serialized payload."""
    batch: RawBatch
    events: List[NormalizedEvent]
    body: str

    @property
    def events_count(self) -> int:
        return len(self.events)


class ForwardingPipeline:
    """
    Main pipeline for forwarding one subscription payload.
    """

    def __init__(self, engine: DeliveryEngine, metrics: Optional[MetricsCollector] = None) -> None:
        self.engine = engine
        self.metrics = metrics

    def prepare(self, data: Union[str, bytes]) -> PreparedBatch:
        """Decode, normalize and serialize ``data``. Raises DecodeError."""
        batch = decode_payload(data)
        events = normalize_batch(batch)
        body = serialize_batch(events)

        if self.metrics:
            self.metrics.record_batch(len(events))

        return PreparedBatch(batch=batch, events=events, body=body)

    async def forward(self, data: Union[str, bytes]) -> DeliveryOutcome:
        """
        Forward one compressed payload.

        Raises:
            LogShipperException: the subclass names the failure kind
        """
        prepared = self.prepare(data)

        logger.info(
            "Forwarding batch",
            log_group=prepared.batch.log_group,
            log_stream=prepared.batch.log_stream,
            events_count=prepared.events_count,
        )

        attempt = DeliveryAttempt(events_count=prepared.events_count)
        try:
            await self.engine.deliver(prepared.body, prepared.events_count, attempt)
        except LogShipperException as e:
            e.details.setdefault("events_count", prepared.events_count)
            raise

        return DeliveryOutcome(OutcomeKind.SUCCESS, SUCCESS_MESSAGE, prepared.events_count)

    async def run(self, event: Any, guard: Optional[CompletionGuard] = None) -> DeliveryOutcome:
        """
        Handle a runtime event end to end.

        Failures are turned into outcomes; the outcome is reported through
        ``guard`` exactly once and also returned.
        """
        guard = guard or CompletionGuard()
        start_time = time.perf_counter()

        try:
            data = extract_awslogs_data(event)
            outcome = await self.forward(data)

        except LogShipperException as e:
            logger.error(
                "Forwarding failed",
                error=str(e),
                error_code=e.error_code,
                details=e.details,
            )
            outcome = DeliveryOutcome.from_exception(e, e.details.get("events_count", 0))

        except Exception as e:
            logger.error(
                "Unexpected error while forwarding",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            outcome = DeliveryOutcome.from_exception(
                LogShipperException(str(e), details={"error_type": type(e).__name__})
            )

        if self.metrics:
            self.metrics.record_outcome(outcome.kind.value, outcome.events_count)

        logger.info(
            "Invocation finished",
            outcome=outcome.kind.value,
            events_count=outcome.events_count,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 1),
        )

        guard.report(outcome)
        return outcome
