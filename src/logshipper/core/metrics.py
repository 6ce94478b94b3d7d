"""
Prometheus metrics collection.

In-memory counters and histograms; Prometheus (or the Lambda log stream
via the container host) handles storage.
"""

import time
from typing import Optional

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

from .. import __version__

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for the log shipper.

    Pass a fresh ``CollectorRegistry`` to keep collectors out of the
    process-wide default registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        self.service_info = Info(
            "logshipper_service",
            "Log shipper service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": __version__,
            "service": "logshipper",
        })

        # Invocation outcomes
        self.deliveries_total = Counter(
            "logshipper_deliveries_total",
            "Total forwarding invocations by terminal outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.events_forwarded_total = Counter(
            "logshipper_events_forwarded_total",
            "Total events acknowledged by the listener",
            registry=self.registry,
        )

        self.batch_size_events = Histogram(
            "logshipper_batch_size_events",
            "Number of events per decoded batch",
            buckets=[0, 1, 10, 50, 100, 500, 1000, 5000, 10000],
            registry=self.registry,
        )

        # Credential wait
        self.credential_wait_seconds = Histogram(
            "logshipper_credential_wait_seconds",
            "Time spent waiting for the customer token",
            buckets=[0.0, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        # Listener requests
        self.listener_responses_total = Counter(
            "logshipper_listener_responses_total",
            "Listener responses by HTTP status code",
            ["status_code"],
            registry=self.registry,
        )

        self.listener_request_duration = Histogram(
            "logshipper_listener_request_duration_seconds",
            "Listener request duration in seconds",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "logshipper_uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        self._start_time = time.time()

    def record_outcome(self, outcome: str, events_count: int = 0) -> None:
        """Record the terminal outcome of one invocation."""
        self.deliveries_total.labels(outcome=outcome).inc()
        if outcome == "success" and events_count:
            self.events_forwarded_total.inc(events_count)

    def record_batch(self, events_count: int) -> None:
        self.batch_size_events.observe(events_count)

    def record_credential_wait(self, duration_seconds: float) -> None:
        self.credential_wait_seconds.observe(duration_seconds)

    def record_listener_request(self, status_code: int, duration_seconds: float) -> None:
        """Record one request to the listener."""
        self.listener_responses_total.labels(status_code=str(status_code)).inc()
        self.listener_request_duration.observe(duration_seconds)

    def update_uptime(self) -> None:
        self.uptime_seconds.set(time.time() - self._start_time)
