"""
API endpoints package.

Contains FastAPI routers for the container host:
- /v1/awslogs:forward - Forward one subscription event
- /metrics - Prometheus metrics
- /healthz, /readyz - Health checks
"""
from .forward import router as forward_router
from .healthz import router as healthz_router
from .metrics import router as metrics_router

__all__ = ["forward_router", "healthz_router", "metrics_router"]
