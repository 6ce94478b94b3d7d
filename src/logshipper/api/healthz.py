"""
Health check endpoints.

- /healthz: Liveness probe (always 200 if service alive)
- /readyz: Readiness probe (200 only once the customer token is decrypted)
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request, Response, status

from .. import __version__

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/healthz",
    status_code=200,
    summary="Liveness probe",
)
async def liveness_check() -> Dict[str, Any]:
    """
    Liveness probe - always returns 200 if service is alive.
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "logshipper",
        "version": __version__,
    }


@router.get(
    "/readyz",
    summary="Readiness probe",
    description="""
    Returns 200 only when the customer token is decrypted and the delivery
    engine is running. Returns 503 with the credential state otherwise.
    """,
)
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    store = getattr(request.app.state, "credential_store", None)
    engine = getattr(request.app.state, "engine", None)

    if store is None or engine is None:
        logger.warning("Readiness checked before startup completed")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "reason": "not_initialized",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    credential = store.status()
    ready = store.is_ready() and engine.running
    body: Dict[str, Any] = {
        "status": "ready" if ready else "not_ready",
        "credential_state": credential.state.value,
        "engine_running": engine.running,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if credential.error is not None:
        body["error"] = str(credential.error)

    response.status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return body
