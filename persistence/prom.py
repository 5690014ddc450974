"""
Simple Prometheus metrics exporter for the skier load test.
"""

import logging
from typing import Optional, Sequence

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from configuration import LATENCY_BUCKETS_SECONDS, MILLISECONDS_PER_SECOND, HTTP_SUCCESS_MIN, HTTP_SUCCESS_MAX
from persistence.record import RequestRecord

logger = logging.getLogger(__name__)


class PrometheusExporter:
    """Live view of the run, fed by the CSV writer with every drained batch."""

    def __init__(self, port: int = 0, registry: Optional[CollectorRegistry] = None):
        self.port = port
        self.registry = registry or CollectorRegistry()
        self.server_started = False

        self.requests_total = Counter(
            'skier_bench_requests_total', 'Total requests', ['method', 'path', 'code'], registry=self.registry)
        self.failed_requests_total = Counter(
            'skier_bench_failed_requests_total', 'Requests without a 2xx response', registry=self.registry)
        self.request_duration = Histogram(
            'skier_bench_request_duration_seconds', 'Request latency', ['method', 'path'],
            buckets=LATENCY_BUCKETS_SECONDS, registry=self.registry)
        self.active_phase = Gauge(
            'skier_bench_active_phase', 'Whether a phase is running', ['phase'], registry=self.registry)

    def start_server(self) -> bool:
        """Start the Prometheus HTTP server; a port of 0 leaves the exporter offline."""
        if self.server_started or self.port == 0:
            return self.server_started
        try:
            start_http_server(self.port, registry=self.registry)
            self.server_started = True
            logger.info(f"Prometheus server started on port {self.port}")
        except OSError as e:
            logger.error(f"Failed to start Prometheus server: {e}")
        return self.server_started

    def observe_batch(self, batch: Sequence[RequestRecord]) -> None:
        """Record every request of one worker batch."""
        for record in batch:
            method = record.kind.method
            self.requests_total.labels(method=method, path=record.path, code=str(record.response_code)).inc()
            self.request_duration.labels(method=method, path=record.path).observe(
                record.latency_ms / MILLISECONDS_PER_SECOND)
            if not HTTP_SUCCESS_MIN <= record.response_code <= HTTP_SUCCESS_MAX:
                self.failed_requests_total.inc()

    def set_active_phase(self, phase_id: str, active: bool) -> None:
        self.active_phase.labels(phase=phase_id).set(1 if active else 0)
