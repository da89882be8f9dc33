"""Trip planning workflow.

Generation and AI edits pass through the monetization gate, then call the
generative capability, validate its result and commit it to the trip store.
Manual activity insertion skips both the gate and the generator.

A result is committed only after it validates, so a failed or rejected
request leaves the store exactly as it was.
"""

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from backend.app.booking.links import ActivityLinks, collect_trip_links
from backend.app.config import Settings
from backend.app.db.repositories import TripRepository
from backend.app.errors import (
    ActivityInsertionError,
    GateStateError,
    GenerationError,
    ItineraryValidationError,
    TripNotFoundError,
    UnknownRequestError,
)
from backend.app.itinerary.editor import (
    apply_generated_edit,
    check_replacement,
    insert_manual_activity,
)
from backend.app.llm.client import TripGenerator
from backend.app.models.monetization import GatedKind, GateStatus
from backend.app.models.request import ChatMessage, TripRequest
from backend.app.models.trip import ManualActivity, Trip, TripDraft
from backend.app.monetization.gate import GatedRequest, MonetizationGate, PaymentProvider
from backend.app.utils.logging import StructuredEventLogger
from backend.app.utils.metrics import PrometheusTripMetrics

logger = logging.getLogger(__name__)


class TripPlanner:
    """Single-writer coordinator for trip generation, edits and insertions."""

    def __init__(
        self,
        *,
        store: TripRepository,
        gate: MonetizationGate,
        generator: TripGenerator,
        payments: PaymentProvider,
        settings: Settings,
        metrics: PrometheusTripMetrics | None = None,
        event_logger: StructuredEventLogger | None = None,
    ) -> None:
        self.store = store
        self.gate = gate
        self.generator = generator
        self.payments = payments
        self.settings = settings
        self._metrics = metrics or PrometheusTripMetrics()
        self._events = event_logger or StructuredEventLogger()

    # Reads

    def list_trips(self) -> tuple[Trip, ...]:
        return self.store.list()

    def get_trip(self, trip_id: str) -> Trip:
        trip = self.store.get(trip_id)
        if trip is None:
            raise TripNotFoundError(f"trip {trip_id} not found")
        return trip

    def delete_trip(self, trip_id: str) -> None:
        if not self.store.remove(trip_id):
            raise TripNotFoundError(f"trip {trip_id} not found")

    def trip_links(self, trip_id: str) -> list[ActivityLinks]:
        """Booking and map links for every activity of a trip."""
        return collect_trip_links(
            self.get_trip(trip_id),
            min_length=self.settings.booking_url_min_length,
            blocked_fragment=self.settings.booking_url_blocked_fragment,
        )

    # Generation

    def _create_trip(
        self, payload: Mapping[str, Any], original_request: TripRequest | None
    ) -> Trip:
        """Validate a generated payload and assign core-owned fields."""
        try:
            draft = check_replacement(
                payload, enforce_round_trip=self.settings.enforce_round_trip
            )
        except ItineraryValidationError as e:
            self._metrics.record_generation("rejected")
            self._events.log_rejection("generate", str(e))
            raise GenerationError(f"Generated trip is invalid: {e}") from e

        return Trip(
            **draft.model_dump(include=set(TripDraft.model_fields)),
            id=str(uuid.uuid4()),
            image_url=self.settings.default_cover_image_url,
            sources=[],
            edit_count=0,
            original_request=original_request,
        )

    async def _generate(self, request: TripRequest) -> Trip:
        try:
            payload = await self.generator.generate_trip(request)
        except GenerationError:
            self._metrics.record_generation("generation_failed")
            raise

        trip = self._create_trip(payload, original_request=request)
        self.store.upsert(trip)
        self._metrics.record_generation("success")
        return trip

    async def _generate_from_chat(self, history: list[ChatMessage]) -> Trip:
        try:
            payload = await self.generator.finalize_from_chat(history)
        except GenerationError:
            self._metrics.record_generation("generation_failed")
            raise

        trip = self._create_trip(payload, original_request=None)
        self.store.upsert(trip)
        self._metrics.record_generation("success")
        return trip

    async def _run_if_authorized(self, request: GatedRequest[Trip]) -> GatedRequest[Trip]:
        try:
            await self.gate.execute(request)
        except GateStateError:
            # Re-gated to AWAITING_PAYMENT; caller sees the new status
            logger.info(f"Request {request.request_id} now awaits payment")
        return request

    async def request_trip(self, request: TripRequest) -> GatedRequest[Trip]:
        """Request a new trip from a structured request.

        Returns:
            EXECUTED request carrying the trip, or one AWAITING_PAYMENT

        Raises:
            GenerationError: Free generation failed; nothing was created
        """
        gated = self.gate.request_generation(lambda: self._generate(request))
        if gated.status == GateStatus.AUTHORIZED:
            return await self._run_if_authorized(gated)
        return gated

    async def request_trip_from_chat(self, history: list[ChatMessage]) -> GatedRequest[Trip]:
        """Request a new trip from a planning conversation (gated like generation)."""
        gated = self.gate.request_generation(
            lambda: self._generate_from_chat(history), kind=GatedKind.chat
        )
        if gated.status == GateStatus.AUTHORIZED:
            return await self._run_if_authorized(gated)
        return gated

    # Editing

    async def _edit(self, trip_id: str, instruction: str) -> Trip:
        trip = self.get_trip(trip_id)
        try:
            payload = await self.generator.edit_trip(trip, instruction)
        except GenerationError:
            self._metrics.record_edit("generation_failed")
            raise

        try:
            updated = apply_generated_edit(
                trip, payload, enforce_round_trip=self.settings.enforce_round_trip
            )
        except ItineraryValidationError as e:
            self._metrics.record_edit("validation_failed")
            self._events.log_rejection("edit", str(e), trip_id=trip.id)
            raise

        self.store.upsert(updated, expected_edit_count=trip.edit_count)
        self._metrics.record_edit("applied")
        return updated

    async def request_edit(self, trip_id: str, instruction: str) -> GatedRequest[Trip]:
        """Request an AI edit of a trip.

        Raises:
            TripNotFoundError: Unknown trip
            GenerationError: Free edit produced no parseable result
            ItineraryValidationError: Free edit produced an invalid trip
        """
        trip = self.get_trip(trip_id)
        gated = self.gate.request_edit(trip, lambda: self._edit(trip_id, instruction))
        if gated.status == GateStatus.AUTHORIZED:
            return await self._run_if_authorized(gated)
        return gated

    # Payment

    def _pending(self, request_id: str) -> GatedRequest:
        gated = self.gate.get_pending(request_id)
        if gated is None:
            raise UnknownRequestError(f"no request {request_id} is awaiting payment")
        return gated

    async def confirm_payment(self, request_id: str) -> GatedRequest[Trip]:
        """Charge for a pending request and execute it."""
        gated = self._pending(request_id)
        if gated.trip_id is not None and self.store.get(gated.trip_id) is None:
            self.gate.cancel(gated, reason="trip no longer exists")
            raise TripNotFoundError(f"trip {gated.trip_id} not found")
        await self.gate.confirm_payment(gated, self.payments)
        return gated

    def cancel(self, request_id: str) -> GatedRequest[Trip]:
        """Cancel a pending request; nothing is charged or changed."""
        gated = self._pending(request_id)
        self.gate.cancel(gated)
        return gated

    # Manual insertion

    def add_activity(self, trip_id: str, day: int, activity: ManualActivity) -> Trip:
        """Insert a user-entered activity into one day of a trip."""
        trip = self.get_trip(trip_id)
        try:
            updated = insert_manual_activity(trip, day, activity)
        except ActivityInsertionError as e:
            self._metrics.record_insertion("rejected")
            self._events.log_rejection("insert_activity", str(e), trip_id=trip_id)
            raise

        self.store.upsert(updated)
        self._metrics.record_insertion("inserted")
        return updated
