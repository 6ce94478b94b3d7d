"""
Request/response models for the container host's HTTP API.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AwsLogsData(BaseModel):
    """The ``awslogs`` member of a CloudWatch Logs subscription event."""

    data: str = Field(description="Base64-encoded, gzip-compressed batch")


class ForwardRequest(BaseModel):
    """CloudWatch Logs subscription event, as the Lambda runtime delivers it."""

    awslogs: AwsLogsData


class ForwardResponse(BaseModel):
    """Successful forwarding acknowledgement."""

    message: str = Field(description="Response message")
    events_forwarded: int = Field(description="Number of events delivered")


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error: str = Field(description="Error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )
