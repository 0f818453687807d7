"""Prometheus metrics for the coprocessor."""

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


DURATION_BUCKETS = [0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]


class CoprocessorMetrics:
    """
    Request counters and latency for one coprocessor app.

    Each instance owns its registry, so several apps (e.g. in tests) never
    collide on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.requests_total = Counter(
            "coprocessor_requests_total",
            "Total coprocessor requests",
            registry=self.registry,
        )
        self.errors_total = Counter(
            "coprocessor_errors_total",
            "Total coprocessor requests answered with an error",
            ["stage"],
            registry=self.registry,
        )
        self.stage_requests_total = Counter(
            "coprocessor_stage_requests_total",
            "Coprocessor requests by stage",
            ["stage"],
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "coprocessor_request_duration_seconds",
            "Coprocessor request duration in seconds",
            ["stage"],
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )

    def observe(self, stage: str, duration: float, error: bool = False) -> None:
        self.requests_total.inc()
        self.stage_requests_total.labels(stage=stage).inc()
        self.request_duration.labels(stage=stage).observe(duration)
        if error:
            self.errors_total.labels(stage=stage).inc()

    def render(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)
