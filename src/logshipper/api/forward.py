"""
Forwarding endpoint.

Main endpoint: POST /v1/awslogs:forward
"""

import uuid

import structlog
from fastapi import APIRouter, Request

from ..core.exceptions import LogShipperException
from ..core.pipeline import ForwardingPipeline
from ..models.api import ErrorResponse, ForwardRequest, ForwardResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_pipeline(request: Request) -> ForwardingPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise LogShipperException("Forwarding pipeline not initialized", status_code=503, error_code="not_ready")
    return pipeline


@router.post(
    "/awslogs:forward",
    response_model=ForwardResponse,
    status_code=200,
    responses={
        400: {"model": ErrorResponse, "description": "Payload could not be decoded"},
        502: {"model": ErrorResponse, "description": "Listener unreachable or did not acknowledge"},
        503: {"model": ErrorResponse, "description": "Customer token unavailable"},
    },
    summary="Forward a CloudWatch Logs subscription event",
    description="""
    Accepts the same event the Lambda runtime would pass to the handler:
    `{"awslogs": {"data": "<base64 gzip>"}}`.

    The batch is decoded, normalized and delivered to the configured
    listener before the response is returned.
    """,
)
async def forward_logs(body: ForwardRequest, request: Request) -> ForwardResponse:
    pipeline = get_pipeline(request)
    request_id = str(uuid.uuid4())

    logger.info("Processing forward request", request_id=request_id)

    outcome = await pipeline.run(body.model_dump())

    if not outcome.succeeded:
        raise outcome.error or LogShipperException(outcome.message)

    return ForwardResponse(message=outcome.message, events_forwarded=outcome.events_count)
