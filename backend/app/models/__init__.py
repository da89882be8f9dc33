"""Models package - re-exports for convenience."""

from backend.app.models.common import (
    HIGH_BOOKING_INTENT,
    ActivityCategory,
    GroundingLink,
    TransportPreference,
    WireModel,
)
from backend.app.models.monetization import (
    GatedKind,
    GateStatus,
    MonetizationState,
    MonetizationSummary,
)
from backend.app.models.request import ChatMessage, ChatTranscript, EditRequest, TripRequest
from backend.app.models.trip import (
    Activity,
    DailyPlan,
    ManualActivity,
    Trip,
    TripDraft,
    itinerary_shape_problems,
)

__all__ = [
    # Common
    "WireModel",
    "ActivityCategory",
    "HIGH_BOOKING_INTENT",
    "TransportPreference",
    "GroundingLink",
    # Requests
    "TripRequest",
    "EditRequest",
    "ChatMessage",
    "ChatTranscript",
    # Trip
    "Trip",
    "TripDraft",
    "DailyPlan",
    "Activity",
    "ManualActivity",
    "itinerary_shape_problems",
    # Monetization
    "GateStatus",
    "GatedKind",
    "MonetizationState",
    "MonetizationSummary",
]
