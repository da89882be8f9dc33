"""Monetization models - gate statuses and persisted trial state."""

from enum import Enum

from pydantic import Field

from backend.app.models.common import WireModel


class GateStatus(str, Enum):
    """Lifecycle of one gated request."""

    REQUESTED = "requested"
    AUTHORIZED = "authorized"
    AWAITING_PAYMENT = "awaiting_payment"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    # Execution ran but its result was not committed
    REJECTED = "rejected"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset(
    {GateStatus.EXECUTED, GateStatus.CANCELLED, GateStatus.REJECTED, GateStatus.FAILED}
)


class GatedKind(str, Enum):
    """Kind of mutating request subject to gating."""

    generate = "generate"
    chat = "chat"
    edit = "edit"


class MonetizationState:
    """Process-wide monetization state owned by a single gate.

    The free-trial flag can only move from False to True.
    """

    def __init__(self, free_trial_used: bool = False) -> None:
        self._free_trial_used = free_trial_used

    @property
    def free_trial_used(self) -> bool:
        return self._free_trial_used

    def mark_free_trial_used(self) -> None:
        self._free_trial_used = True

    def __repr__(self) -> str:
        return f"MonetizationState(free_trial_used={self._free_trial_used})"


class MonetizationSummary(WireModel):
    """Public view of pricing and trial eligibility."""

    free_trial_used: bool
    trip_generation_price_cents: int = Field(..., gt=0)
    trip_edit_price_cents: int = Field(..., gt=0)
    free_edit_allowance: int = Field(..., ge=0)
    currency: str
