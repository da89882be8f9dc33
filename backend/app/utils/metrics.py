"""Prometheus metrics for itinerary operations."""

from prometheus_client import Counter

gate_decisions_total = Counter(
    "gate_decisions_total",
    "Gated request status transitions",
    ["kind", "status"],
)

trip_generations_total = Counter(
    "trip_generations_total",
    "Trip generation outcomes",
    ["outcome"],
)

trip_edits_total = Counter(
    "trip_edits_total",
    "AI edit outcomes",
    ["outcome"],
)

manual_insertions_total = Counter(
    "manual_insertions_total",
    "Manual activity insertion outcomes",
    ["outcome"],
)


class PrometheusTripMetrics:
    """Prometheus-based itinerary metrics implementation."""

    def record_gate(self, kind: str, status: str) -> None:
        """Record a gate transition."""
        gate_decisions_total.labels(kind=kind, status=status).inc()

    def record_generation(self, outcome: str) -> None:
        """Record a generation outcome."""
        trip_generations_total.labels(outcome=outcome).inc()

    def record_edit(self, outcome: str) -> None:
        """Record an edit outcome."""
        trip_edits_total.labels(outcome=outcome).inc()

    def record_insertion(self, outcome: str) -> None:
        """Record a manual insertion outcome."""
        manual_insertions_total.labels(outcome=outcome).inc()
