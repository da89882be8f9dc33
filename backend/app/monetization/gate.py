"""Monetization gate for generation and AI-edit requests.

Each mutating request moves through:

    REQUESTED -> AUTHORIZED -> EXECUTED
    REQUESTED -> AWAITING_PAYMENT -> AUTHORIZED -> EXECUTED
    AWAITING_PAYMENT -> CANCELLED

with REJECTED (result failed validation) and FAILED (generative capability
failed) as the other terminal outcomes of execution. Terminal requests are
never retried; the user starts a new request instead.

Rules:
    - Generation (form or chat) is free while the global free-trial flag is
      unset; the flag is set after the first free generation succeeds.
    - An edit is free while the trip's edit counter is below the allowance.
    - Anything else waits for exactly one payment attempt.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Generic, Protocol, TypeVar

from backend.app.config import Settings
from backend.app.db.repositories import FreeTrialRepository
from backend.app.errors import (
    GateStateError,
    ItineraryValidationError,
    PaymentDeclinedError,
    TripError,
)
from backend.app.models.monetization import (
    TERMINAL_STATUSES,
    GatedKind,
    GateStatus,
    MonetizationState,
    MonetizationSummary,
)
from backend.app.models.trip import Trip
from backend.app.utils.logging import StructuredEventLogger
from backend.app.utils.metrics import PrometheusTripMetrics

T = TypeVar("T")

logger = logging.getLogger(__name__)

GENERATION_KINDS = frozenset({GatedKind.generate, GatedKind.chat})

ALLOWED_TRANSITIONS: dict[GateStatus, frozenset[GateStatus]] = {
    GateStatus.REQUESTED: frozenset({GateStatus.AUTHORIZED, GateStatus.AWAITING_PAYMENT}),
    GateStatus.AWAITING_PAYMENT: frozenset({GateStatus.AUTHORIZED, GateStatus.CANCELLED}),
    GateStatus.AUTHORIZED: frozenset(
        {
            GateStatus.EXECUTED,
            GateStatus.REJECTED,
            GateStatus.FAILED,
            GateStatus.AWAITING_PAYMENT,
        }
    ),
}


class PaymentProvider(Protocol):
    """External payment capability."""

    async def charge(self, amount_cents: int, currency: str, description: str) -> bool:
        """Charge the user.

        Args:
            amount_cents: Amount to charge
            currency: ISO currency code
            description: What the charge is for

        Returns:
            True if the charge succeeded
        """
        ...


class SimulatedPaymentProvider:
    """Payment processor stand-in that approves after a fixed delay."""

    def __init__(self, delay_ms: int = 1500, approve: bool = True) -> None:
        self._delay_ms = delay_ms
        self._approve = approve
        self.charges: list[tuple[int, str, str]] = []

    async def charge(self, amount_cents: int, currency: str, description: str) -> bool:
        """Record the charge and approve or decline it."""
        self.charges.append((amount_cents, currency, description))
        if self._delay_ms > 0:
            await asyncio.sleep(self._delay_ms / 1000)
        return self._approve


@dataclass
class GatedRequest(Generic[T]):
    """One generation or edit request travelling through the gate."""

    kind: GatedKind
    action: Callable[[], Awaitable[T]]
    trip_id: str | None = None
    price_cents: int = 0
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: GateStatus = GateStatus.REQUESTED
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    free: bool = False
    payment_attempted: bool = False
    result: T | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class MonetizationGate:
    """Decides whether gated requests run free or wait on payment."""

    def __init__(
        self,
        state: MonetizationState,
        *,
        generation_price_cents: int = 299,
        edit_price_cents: int = 99,
        free_edit_allowance: int = 2,
        currency: str = "USD",
        payment_window_seconds: int = 900,
        flag_store: FreeTrialRepository | None = None,
        metrics: PrometheusTripMetrics | None = None,
        event_logger: StructuredEventLogger | None = None,
    ) -> None:
        self.state = state
        self.generation_price_cents = generation_price_cents
        self.edit_price_cents = edit_price_cents
        self.free_edit_allowance = free_edit_allowance
        self.currency = currency
        self.payment_window = timedelta(seconds=payment_window_seconds)
        self._flag_store = flag_store
        self._metrics = metrics or PrometheusTripMetrics()
        self._events = event_logger or StructuredEventLogger()
        self._pending: dict[str, GatedRequest] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        state: MonetizationState,
        flag_store: FreeTrialRepository | None = None,
    ) -> "MonetizationGate":
        """Build a gate with prices and allowance from settings."""
        return cls(
            state,
            generation_price_cents=settings.trip_generation_price_cents,
            edit_price_cents=settings.trip_edit_price_cents,
            free_edit_allowance=settings.free_edit_allowance,
            currency=settings.currency,
            payment_window_seconds=settings.payment_window_seconds,
            flag_store=flag_store,
        )

    def summary(self) -> MonetizationSummary:
        """Current trial eligibility and prices."""
        return MonetizationSummary(
            free_trial_used=self.state.free_trial_used,
            trip_generation_price_cents=self.generation_price_cents,
            trip_edit_price_cents=self.edit_price_cents,
            free_edit_allowance=self.free_edit_allowance,
            currency=self.currency,
        )

    def is_free_edit(self, trip: Trip) -> bool:
        """True while the trip has edits left in its free allowance."""
        return trip.edit_count < self.free_edit_allowance

    def _transition(
        self, request: GatedRequest, target: GateStatus, error_reason: str | None = None
    ) -> None:
        allowed = ALLOWED_TRANSITIONS.get(request.status, frozenset())
        if target not in allowed:
            raise GateStateError(
                f"request {request.request_id} cannot move from "
                f"{request.status.value} to {target.value}"
            )

        previous = request.status.value
        request.status = target
        if error_reason:
            request.error = error_reason

        if target == GateStatus.AWAITING_PAYMENT:
            self._pending[request.request_id] = request
        elif target != GateStatus.AUTHORIZED:
            self._pending.pop(request.request_id, None)

        self._metrics.record_gate(request.kind.value, target.value)
        self._events.log_gate_transition(request, previous, error_reason)

    def request_generation(
        self, action: Callable[[], Awaitable[T]], kind: GatedKind = GatedKind.generate
    ) -> GatedRequest[T]:
        """Gate a trip generation request.

        Args:
            action: Performs generation and commit when authorized
            kind: generate (form) or chat (conversation finalization)

        Returns:
            Request in AUTHORIZED or AWAITING_PAYMENT
        """
        if kind not in GENERATION_KINDS:
            raise ValueError(f"{kind.value} is not a generation kind")

        self.expire_stale()
        request: GatedRequest[T] = GatedRequest(kind=kind, action=action)
        if not self.state.free_trial_used:
            request.free = True
            self._transition(request, GateStatus.AUTHORIZED)
        else:
            request.price_cents = self.generation_price_cents
            self._transition(request, GateStatus.AWAITING_PAYMENT)
        return request

    def request_edit(self, trip: Trip, action: Callable[[], Awaitable[T]]) -> GatedRequest[T]:
        """Gate an AI edit of a specific trip.

        Eligibility depends only on this trip's edit counter.
        """
        self.expire_stale()
        request: GatedRequest[T] = GatedRequest(kind=GatedKind.edit, action=action, trip_id=trip.id)
        if self.is_free_edit(trip):
            request.free = True
            self._transition(request, GateStatus.AUTHORIZED)
        else:
            request.price_cents = self.edit_price_cents
            self._transition(request, GateStatus.AWAITING_PAYMENT)
        return request

    def expire_stale(self, now: datetime | None = None) -> int:
        """Cancel requests that waited longer than the payment window.

        Returns:
            Number of requests cancelled
        """
        now = now or datetime.now(timezone.utc)
        stale = [r for r in self._pending.values() if now - r.created_at > self.payment_window]
        for request in stale:
            self._transition(request, GateStatus.CANCELLED, error_reason="payment window expired")
        return len(stale)

    def get_pending(self, request_id: str) -> GatedRequest | None:
        """Look up a request awaiting payment within the payment window."""
        self.expire_stale()
        return self._pending.get(request_id)

    async def execute(self, request: GatedRequest[T]) -> T:
        """Run an authorized request's action.

        Raises:
            GateStateError: If the request is not authorized
            ItineraryValidationError: Result rejected (request becomes REJECTED)
            TripError: Action failed (request becomes FAILED)
        """
        if request.status != GateStatus.AUTHORIZED:
            raise GateStateError(
                f"request {request.request_id} is {request.status.value}, not authorized"
            )

        # A free generation is only free while the trial is still unused
        if request.free and request.kind in GENERATION_KINDS and self.state.free_trial_used:
            request.free = False
            request.price_cents = self.generation_price_cents
            self._transition(request, GateStatus.AWAITING_PAYMENT)
            raise GateStateError(
                f"request {request.request_id} needs payment: free trial already used"
            )

        try:
            result = await request.action()
        except ItineraryValidationError as e:
            self._transition(request, GateStatus.REJECTED, error_reason=str(e))
            raise
        except TripError as e:
            self._transition(request, GateStatus.FAILED, error_reason=str(e))
            raise
        except Exception as e:
            logger.error(f"Unexpected error executing {request.request_id}: {e}")
            self._transition(request, GateStatus.FAILED, error_reason=type(e).__name__)
            raise

        request.result = result
        self._transition(request, GateStatus.EXECUTED)

        if request.kind in GENERATION_KINDS and not self.state.free_trial_used:
            self.state.mark_free_trial_used()
            if self._flag_store is not None:
                self._flag_store.save_free_trial_used(True)
            logger.info("Free trial consumed")

        return result

    async def confirm_payment(self, request: GatedRequest[T], provider: PaymentProvider) -> T:
        """Charge once for a request awaiting payment, then execute it.

        Raises:
            GateStateError: If the request is not awaiting payment
            PaymentDeclinedError: Charge declined or failed (request becomes CANCELLED)
        """
        if request.status != GateStatus.AWAITING_PAYMENT or request.payment_attempted:
            raise GateStateError(
                f"request {request.request_id} is {request.status.value}, not awaiting payment"
            )

        request.payment_attempted = True
        description = f"{request.kind.value} {request.trip_id or 'new trip'}"
        try:
            approved = await provider.charge(request.price_cents, self.currency, description)
        except Exception as e:
            logger.error(f"Payment capability failed for {request.request_id}: {e}")
            self._transition(request, GateStatus.CANCELLED, error_reason="payment failed")
            raise PaymentDeclinedError("payment failed") from e

        if not approved:
            self._transition(request, GateStatus.CANCELLED, error_reason="payment declined")
            raise PaymentDeclinedError("payment declined")

        self._transition(request, GateStatus.AUTHORIZED)
        return await self.execute(request)

    def cancel(self, request: GatedRequest, reason: str | None = None) -> None:
        """User declined to pay, or the request can no longer run.

        Raises:
            GateStateError: If the request is not awaiting payment
        """
        if request.status != GateStatus.AWAITING_PAYMENT:
            raise GateStateError(
                f"request {request.request_id} is {request.status.value}, not awaiting payment"
            )
        self._transition(request, GateStatus.CANCELLED, error_reason=reason)
