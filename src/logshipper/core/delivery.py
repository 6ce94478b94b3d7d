"""
Async delivery of serialized batches to the bulk listener.

Flow per batch:
- Wait for the customer token (poll with a deadline)
- Build the POST request carrying token and log type in the query string
- Send it and read the reply until the listener acknowledges with
  ``{"response": "ok"}`` or the stream ends
"""

import asyncio
import json
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional
from urllib.parse import quote

import aiohttp
import structlog
from yarl import URL

from ..config import DeliverySettings, DestinationSettings
from .credentials import CredentialState, CredentialStore
from .exceptions import (
    CredentialError,
    CredentialTimeoutError,
    MalformedResponseError,
    TransportError,
)
from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

# Characters encodeURIComponent leaves alone besides letters, digits and "_.-~"
URI_COMPONENT_SAFE = "!'()*"

# Bytes of an unacknowledged reply kept in error details
RESPONSE_PREVIEW_BYTES = 512

_WHITESPACE = re.compile(r"\s*")


class DeliveryState(str, Enum):
    """States of one delivery."""

    WAITING_CREDENTIAL = "waiting_credential"
    SENDING = "sending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    DeliveryState.WAITING_CREDENTIAL: {DeliveryState.SENDING, DeliveryState.FAILED},
    DeliveryState.SENDING: {DeliveryState.SUCCEEDED, DeliveryState.FAILED},
    DeliveryState.SUCCEEDED: set(),
    DeliveryState.FAILED: set(),
}


@dataclass
class DeliveryAttempt:
    """Tracks the state of one batch through the engine."""
    events_count: int = 0
    state: DeliveryState = DeliveryState.WAITING_CREDENTIAL
    poll_cycles: int = 0

    def transition(self, new_state: DeliveryState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid delivery transition {self.state.value} -> {new_state.value}")
        logger.debug(
            "Delivery state changed",
            from_state=self.state.value,
            to_state=new_state.value,
            events_count=self.events_count,
        )
        self.state = new_state

    @property
    def finished(self) -> bool:
        return self.state in (DeliveryState.SUCCEEDED, DeliveryState.FAILED)


@dataclass
class OutboundRequest:
    """One POST to the listener. Built per attempt, never stored."""
    url: str
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class DeliveryResult:
    """Acknowledged delivery."""
    events_count: int
    status_code: int
    acknowledgement: Dict[str, Any]
    duration_seconds: float


def is_acknowledgement(document: Any) -> bool:
    return isinstance(document, dict) and document.get("response") == "ok"


def iter_documents(data: bytes) -> Iterator[Any]:
    """
    Yield the JSON documents written back to back in ``data``.

    Whitespace between documents is skipped; iteration stops at the first
    text that does not parse.
    """
    text = data.decode("utf-8", errors="replace")
    decoder = json.JSONDecoder()
    index = 0

    while True:
        match = _WHITESPACE.match(text, index)
        index = match.end()
        if index >= len(text):
            return
        try:
            document, index = decoder.raw_decode(text, index)
        except ValueError:
            return
        yield document


class DeliveryEngine:
    """
    Sends batches to the listener once the customer token is available.

    Handles:
    - Credential readiness gating
    - Request construction
    - Response/error classification

    Nothing is retried here except the credential poll.
    """

    def __init__(
        self,
        destination: DestinationSettings,
        delivery: DeliverySettings,
        store: CredentialStore,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.destination = destination
        self.delivery = delivery
        self.store = store
        self.metrics = metrics
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info(
            "Delivery engine initialized",
            host=destination.host_name,
            port=destination.host_port,
            log_type=destination.log_type,
        )

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.delivery.request_timeout_seconds)
        )
        logger.debug("Delivery engine started")

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session is not None:
            await self.session.close()
            self.session = None
        logger.debug("Delivery engine stopped")

    async def __aenter__(self) -> "DeliveryEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    @property
    def running(self) -> bool:
        return self.session is not None

    async def wait_for_credential(self, attempt: Optional[DeliveryAttempt] = None) -> str:
        """
        Return the customer token, polling until it is ready.

        Raises:
            CredentialError: decryption failed; never retried
            CredentialTimeoutError: still pending at the configured deadline
        """
        attempt = attempt or DeliveryAttempt()
        timeout = self.delivery.credential_timeout_seconds

        try:
            return await asyncio.wait_for(self._poll_credential(attempt), timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Customer token still not initialized, giving up",
                timeout_seconds=timeout,
                poll_cycles=attempt.poll_cycles,
            )
            raise CredentialTimeoutError(timeout_seconds=timeout) from None

    async def _poll_credential(self, attempt: DeliveryAttempt) -> str:
        while True:
            status = self.store.status()

            if status.state is CredentialState.READY and status.token is not None:
                return status.token

            if status.state is CredentialState.FAILED:
                logger.error("Error decrypting the customer token, not retrying")
                error = status.error or CredentialError("Customer token decryption failed")
                raise CredentialError(str(error), details=dict(error.details)) from error

            if attempt.poll_cycles == 0:
                logger.info(
                    "Customer token not initialized yet, retrying",
                    retry_in_ms=self.delivery.poll_interval_ms,
                )
            attempt.poll_cycles += 1
            await asyncio.sleep(self.delivery.poll_interval_seconds)

    def build_request(self, token: str, body: str) -> OutboundRequest:
        """Build the POST for ``body``; the URL is rebuilt from settings each time."""
        log_type = quote(self.destination.log_type, safe=URI_COMPONENT_SAFE)
        url = (
            f"{self.destination.scheme}://{self.destination.host_name}:{self.destination.host_port}"
            f"/?token={token}&type={log_type}"
        )
        payload = body.encode("utf-8")

        return OutboundRequest(
            url=url,
            body=payload,
            headers={
                "Content-Type": "application/json",
                "Content-Length": str(len(payload)),
            },
        )

    async def send(self, request: OutboundRequest, events_count: int = 0) -> DeliveryResult:
        """
        POST ``request`` and wait for the listener's acknowledgement.

        Raises:
            TransportError: the request could not be made or the reply not read
            MalformedResponseError: the reply ended without ``{"response": "ok"}``
        """
        if self.session is None:
            raise TransportError("Delivery engine not started")

        start_time = time.perf_counter()
        status_code = 0

        try:
            async with self.session.post(
                URL(request.url, encoded=True),
                data=request.body,
                headers=request.headers,
            ) as response:
                status_code = response.status
                acknowledgement = await self._read_acknowledgement(response)

        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.error(
                "Problem with request",
                host=self.destination.host_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError(
                f"Problem with request: {str(e) or type(e).__name__}",
                details={"error_type": type(e).__name__},
            ) from e

        finally:
            if self.metrics and status_code:
                self.metrics.record_listener_request(status_code, time.perf_counter() - start_time)

        return DeliveryResult(
            events_count=events_count,
            status_code=status_code,
            acknowledgement=acknowledgement,
            duration_seconds=time.perf_counter() - start_time,
        )

    async def _read_acknowledgement(self, response: aiohttp.ClientResponse) -> Dict[str, Any]:
        """
        Read the reply chunk by chunk.

        Every JSON document found in a chunk is checked and the first ok
        wins. Once the stream ends the whole body is walked again, which
        covers documents split across chunks or written back to back.
        """
        received = bytearray()

        async for chunk in response.content.iter_any():
            received.extend(chunk)
            for document in iter_documents(chunk):
                if is_acknowledgement(document):
                    return document
                logger.warning(
                    "Listener did not acknowledge batch",
                    status_code=response.status,
                    response=document.get("response") if isinstance(document, dict) else document,
                )

        logger.debug("No more data in response", status_code=response.status, bytes_received=len(received))

        for document in iter_documents(bytes(received)):
            if is_acknowledgement(document):
                return document

        raise MalformedResponseError(
            "Listener response ended without acknowledging the batch",
            details={
                "status_code": response.status,
                "body": bytes(received[:RESPONSE_PREVIEW_BYTES]).decode("utf-8", errors="replace"),
            },
        )

    async def deliver(
        self,
        body: str,
        events_count: int = 0,
        attempt: Optional[DeliveryAttempt] = None,
    ) -> DeliveryResult:
        """Wait for the token, then send ``body``. Failures leave ``attempt`` FAILED."""
        attempt = attempt or DeliveryAttempt(events_count=events_count)
        wait_started = time.perf_counter()

        try:
            token = await self.wait_for_credential(attempt)
        except (CredentialError, CredentialTimeoutError):
            attempt.transition(DeliveryState.FAILED)
            raise

        if self.metrics:
            self.metrics.record_credential_wait(time.perf_counter() - wait_started)

        attempt.transition(DeliveryState.SENDING)
        request = self.build_request(token, body)

        logger.info(
            "Sending events",
            host=self.destination.host_name,
            port=self.destination.host_port,
            events_count=events_count,
            body_bytes=len(request.body),
        )

        try:
            result = await self.send(request, events_count)
        except (TransportError, MalformedResponseError):
            attempt.transition(DeliveryState.FAILED)
            raise

        attempt.transition(DeliveryState.SUCCEEDED)
        logger.info(
            "All events are sent",
            events_count=events_count,
            status_code=result.status_code,
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result
