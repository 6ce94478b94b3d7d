"""
CloudWatch Logs batch and normalized event models.

- RawBatch mirrors the decompressed subscription payload
- NormalizedEvent is the record shape the bulk listener indexes
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RawLogEvent(BaseModel):
    """
    One record of a subscription payload.

    ``message`` is optional: records without one are forwarded with an
    empty message rather than rejected.
    """

    message: Optional[str] = Field(default=None, description="Free-text log message")
    timestamp: Union[int, float] = Field(description="Epoch milliseconds")
    id: Optional[str] = Field(default=None, description="CloudWatch event id")

    model_config = ConfigDict(frozen=True, extra="ignore")


class RawBatch(BaseModel):
    """Decompressed subscription payload."""

    log_group: str = Field(alias="logGroup", description="Origin log group name")
    log_stream: str = Field(alias="logStream", description="Origin log stream name")
    log_events: List[RawLogEvent] = Field(alias="logEvents", description="Records in delivery order")

    message_type: Optional[str] = Field(default=None, alias="messageType")
    owner: Optional[str] = Field(default=None)
    subscription_filters: List[str] = Field(default_factory=list, alias="subscriptionFilters")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class NormalizedEvent(BaseModel):
    """
    Event as delivered to the listener.

    Field order is the serialized key order.
    """

    message: str = Field(description="Message copied from the raw record")
    logGroupName: str = Field(description="Origin log group name")
    logStreamName: str = Field(description="Origin log stream name")
    timestamp: str = Field(alias="@timestamp", description="ISO-8601 UTC with milliseconds")

    model_config = ConfigDict(frozen=True, populate_by_name=True)
