"""
AWS Lambda entry point.

Subscribe the function to a CloudWatch Logs group; each invocation
forwards one subscription batch. Token decryption is started when the
module is imported (cold start) and shared by every warm invocation.
"""

import asyncio
from typing import Any, Dict, Optional, Protocol

import structlog

from .config import get_settings
from .core.delivery import DeliveryEngine
from .core.exceptions import LogShipperException
from .core.kms import bootstrap_credentials
from .core.pipeline import ForwardingPipeline
from .logging_config import configure_logging
from .models.outcome import DeliveryOutcome


class LambdaContext(Protocol):
    """The parts of the Lambda context object that are logged."""

    aws_request_id: str
    function_name: Optional[str]


settings = get_settings()
configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger(__name__)

# Fire-and-forget: the first invocations may arrive before KMS answers
credential_store = bootstrap_credentials(settings.credential)


async def forward_event(event: Dict[str, Any]) -> DeliveryOutcome:
    """Run one event through a fresh engine bound to the current event loop."""
    async with DeliveryEngine(settings.destination, settings.delivery, credential_store) as engine:
        pipeline = ForwardingPipeline(engine)
        return await pipeline.run(event)


def lambda_handler(event: Dict[str, Any], context: Optional[LambdaContext]) -> str:
    """
    Forward one CloudWatch Logs subscription event.

    Returns:
        Success acknowledgement message

    Raises:
        LogShipperException: describing why the batch was not delivered
    """
    request_id = context.aws_request_id if context else "unknown"
    logger.info(
        "Lambda invocation started",
        request_id=request_id,
        function_name=getattr(context, "function_name", None),
        credential_state=credential_store.state.value,
    )

    outcome = asyncio.run(forward_event(event))

    if outcome.succeeded:
        return outcome.message

    raise outcome.error or LogShipperException(outcome.message)
