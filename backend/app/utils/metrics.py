"""Prometheus metrics for collaborator calls and reconciliation."""

from prometheus_client import Counter, Histogram

# Collaborator call metrics
collaborator_latency_ms = Histogram(
    "collaborator_latency_ms",
    "Collaborator call latency in milliseconds",
    ["collaborator", "outcome"],
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 20000],
)

collaborator_errors_total = Counter(
    "collaborator_errors_total",
    "Total collaborator call failures",
    ["collaborator", "reason"],
)

# Reconciliation metrics
budget_corrections_total = Counter(
    "budget_corrections_total",
    "Budget totals rewritten to restore total == sum(breakdown)",
    ["stage"],
)

itinerary_evictions_total = Counter(
    "itinerary_evictions_total",
    "Itinerary items evicted by time-window trimming",
    ["side"],
)


class PrometheusCollaboratorMetrics:
    """Prometheus-based collaborator metrics implementation."""

    def record_latency(self, collaborator: str, outcome: str, latency_ms: float) -> None:
        """Record collaborator call latency."""
        collaborator_latency_ms.labels(collaborator=collaborator, outcome=outcome).observe(
            latency_ms
        )

    def inc_error(self, collaborator: str, reason: str) -> None:
        """Increment error counter."""
        collaborator_errors_total.labels(collaborator=collaborator, reason=reason).inc()
