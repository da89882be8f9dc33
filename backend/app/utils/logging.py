"""Structured logging for itinerary lifecycle events."""

import logging
from typing import TYPE_CHECKING, Any

from backend.app.models.trip import Trip

if TYPE_CHECKING:
    from backend.app.monetization.gate import GatedRequest

logger = logging.getLogger(__name__)


class StructuredEventLogger:
    """Structured logger for gate transitions and trip commits."""

    def log_gate_transition(
        self,
        request: "GatedRequest",
        previous: str,
        error_reason: str | None = None,
    ) -> None:
        """Log a gated request moving between statuses."""
        log_data: dict[str, Any] = {
            "request_id": request.request_id,
            "kind": request.kind.value,
            "trip_id": request.trip_id,
            "from": previous,
            "to": request.status.value,
            "price_cents": request.price_cents,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Gate {request.kind.value}: {previous} -> {request.status.value}"

        if error_reason:
            logger.warning(log_msg, extra={"structured": log_data})
        else:
            logger.info(log_msg, extra={"structured": log_data})

    def log_commit(self, trip: Trip, operation: str) -> None:
        """Log a trip snapshot committed to the store."""
        log_data: dict[str, Any] = {
            "trip_id": trip.id,
            "operation": operation,
            "days": len(trip.itinerary),
            "edit_count": trip.edit_count,
        }
        logger.info(f"Trip commit: {trip.id} - {operation}", extra={"structured": log_data})

    def log_rejection(self, operation: str, reason: str, trip_id: str | None = None) -> None:
        """Log an operation rejected before commit."""
        log_data: dict[str, Any] = {
            "trip_id": trip_id,
            "operation": operation,
            "error_reason": reason,
        }
        logger.warning(f"Rejected {operation}: {reason}", extra={"structured": log_data})
