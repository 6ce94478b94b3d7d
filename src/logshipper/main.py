"""
FastAPI application for running the forwarder as a service.

This module sets up the app with routes, error handling and the lifecycle
of the shared delivery engine.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry

from . import __version__
from .api import forward_router, healthz_router, metrics_router
from .config import Settings, get_settings
from .core.credentials import CredentialStore
from .core.delivery import DeliveryEngine
from .core.exceptions import LogShipperException
from .core.kms import TokenDecryptor, bootstrap_credentials
from .core.metrics import MetricsCollector
from .core.pipeline import ForwardingPipeline
from .logging_config import configure_logging


def create_lifespan_handler(
    settings: Settings,
    credential_store: Optional[CredentialStore] = None,
    decryptor: Optional[TokenDecryptor] = None,
) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Starts token decryption and the shared delivery engine; stops the
        engine on shutdown.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting logshipper service", version=app.version)

        metrics = MetricsCollector(registry=CollectorRegistry())
        app.state.metrics = metrics

        store = bootstrap_credentials(settings.credential, decryptor=decryptor, store=credential_store)
        app.state.credential_store = store

        engine = DeliveryEngine(settings.destination, settings.delivery, store, metrics=metrics)
        await engine.start()
        app.state.engine = engine
        app.state.pipeline = ForwardingPipeline(engine, metrics=metrics)

        try:
            logger.info("logshipper service started successfully", credential_state=store.state.value)
            yield
        finally:
            logger.info("Shutting down logshipper service")
            await engine.stop()
            logger.info("logshipper service shutdown complete")

    return lifespan


def create_app(
    settings: Optional[Settings] = None,
    credential_store: Optional[CredentialStore] = None,
    decryptor: Optional[TokenDecryptor] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    ``credential_store`` and ``decryptor`` replace the process-wide store
    and the KMS client, mainly for tests.
    """
    settings = settings or get_settings()

    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="logshipper",
        description="CloudWatch Logs → bulk HTTP listener forwarder",
        version=__version__,
        lifespan=create_lifespan_handler(settings, credential_store, decryptor),
    )

    app.add_exception_handler(LogShipperException, logshipper_exception_handler)

    app.include_router(forward_router, prefix="/v1", tags=["forward"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "logshipper",
            "version": app.version,
            "docs": "/docs",
        }

    return app


async def logshipper_exception_handler(request: Request, exc: LogShipperException) -> JSONResponse:
    """Render forwarding failures as JSON error responses."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Forwarding request failed",
        error=str(exc),
        error_code=exc.error_code,
        status_code=exc.status_code,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": str(exc),
            "details": exc.details,
        },
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "logshipper.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
