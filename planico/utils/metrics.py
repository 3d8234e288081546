"""
Prometheus metrics for API monitoring and schedule synchronization.

Collectors live on an explicitly constructed ``PlannerMetrics`` object bound
to its own registry. The application builds one at startup and closes it on
shutdown; tests build their own.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class PlannerMetrics:
    """Request and schedule-sync collectors on a dedicated registry."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        # Request metrics - labeled by method and path
        self.request_counter = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["method", "path"],
            registry=self.registry,
        )
        self.request_latency = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            registry=self.registry,
        )

        # Schedule synchronization
        self.mutations = Counter(
            "schedule_mutations_total",
            "Schedule mutations sent to the store, by operation and outcome",
            ["operation", "outcome"],
            registry=self.registry,
        )
        self.rollbacks = Counter(
            "schedule_rollbacks_total",
            "Optimistic local edits reverted after a store failure",
            ["operation"],
            registry=self.registry,
        )
        self.superseded_fetches = Counter(
            "schedule_fetches_superseded_total",
            "Week fetches whose result was discarded because a newer fetch was issued",
            registry=self.registry,
        )

        self._collectors = (
            self.request_counter,
            self.request_latency,
            self.mutations,
            self.rollbacks,
            self.superseded_fetches,
        )
        self._closed = False

    def render(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)

    def close(self) -> None:
        """Unregister all collectors."""
        if self._closed:
            return
        for collector in self._collectors:
            self.registry.unregister(collector)
        self._closed = True
