"""
Pytest configuration and shared fixtures.

Contains payload builders, settings and a fake bulk listener built on
aiohttp's web server.
"""

import asyncio
import base64
import gzip
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Optional

import pytest
from aiohttp import web

from logshipper.config import DeliverySettings, DestinationSettings, get_settings
from logshipper.core.credentials import CredentialStore, reset_credential_store
from logshipper.core.kms import reset_bootstrap


def make_payload(document: Any) -> str:
    """Encode ``document`` the way CloudWatch Logs does: JSON -> gzip -> base64."""
    raw = json.dumps(document).encode("utf-8")
    return base64.b64encode(gzip.compress(raw)).decode("ascii")


def make_event(document: Any) -> Dict[str, Any]:
    """Wrap a payload in a subscription invocation event."""
    return {"awslogs": {"data": make_payload(document)}}


@pytest.fixture
def payload_factory() -> Any:
    return make_payload


@pytest.fixture
def event_factory() -> Any:
    return make_event


@pytest.fixture(autouse=True)
def reset_process_state() -> Generator[None, None, None]:
    """Isolate process-wide singletons between tests."""
    yield
    reset_credential_store()
    reset_bootstrap()
    get_settings.cache_clear()


@pytest.fixture
def sample_batch() -> Dict[str, Any]:
    """Subscription payload with three records."""
    return {
        "messageType": "DATA_MESSAGE",
        "owner": "123456789012",
        "logGroup": "/aws/lambda/orders",
        "logStream": "2024/01/01/[$LATEST]abcdef",
        "subscriptionFilters": ["to-listener"],
        "logEvents": [
            {"id": "1", "timestamp": 1700000000123, "message": "START RequestId: 42"},
            {"id": "2", "timestamp": 1700000000456, "message": "processing order"},
            {"id": "3", "timestamp": 1700000000789, "message": "END RequestId: 42"},
        ],
    }


@pytest.fixture
def minimal_batch() -> Dict[str, Any]:
    return {
        "logGroup": "g",
        "logStream": "s",
        "logEvents": [{"message": "hello", "timestamp": 0}],
    }


@pytest.fixture
def ready_store() -> CredentialStore:
    store = CredentialStore()
    store.resolve("tok")
    return store


@pytest.fixture
def delivery_settings() -> DeliverySettings:
    return DeliverySettings(
        poll_interval_ms=10,
        credential_timeout_seconds=2.0,
        request_timeout_seconds=2.0,
    )


@dataclass
class ReceivedRequest:
    method: str
    raw_path: str
    query: Dict[str, str]
    headers: Dict[str, str]
    body: bytes


@dataclass
class FakeListener:
    """Bulk listener stand-in; replies with ``chunks`` written one by one."""
    chunks: List[bytes] = field(default_factory=lambda: [b'{"response":"ok"}'])
    status: int = 200
    delay_seconds: float = 0.0
    received: List[ReceivedRequest] = field(default_factory=list)
    port: Optional[int] = None

    async def handle(self, request: web.Request) -> web.StreamResponse:
        self.received.append(
            ReceivedRequest(
                method=request.method,
                raw_path=request.raw_path,
                query=dict(request.query),
                headers=dict(request.headers),
                body=await request.read(),
            )
        )

        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        response = web.StreamResponse(status=self.status)
        await response.prepare(request)
        for chunk in self.chunks:
            await response.write(chunk)
        await response.write_eof()
        return response

    def destination(self, log_type: str = "cloudwatch") -> DestinationSettings:
        return DestinationSettings(
            host_name="127.0.0.1",
            host_port=self.port,
            log_type=log_type,
            scheme="http",
        )


@pytest.fixture
async def listener(aiohttp_server: Any) -> FakeListener:
    fake = FakeListener()
    app = web.Application()
    app.router.add_post("/", fake.handle)
    server = await aiohttp_server(app)
    fake.port = server.port
    return fake
