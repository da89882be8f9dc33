"""Request models - user input for generation and editing."""

from datetime import date
from typing import Literal

from pydantic import Field, ValidationInfo, field_validator

from backend.app.models.common import TransportPreference, WireModel


class TripRequest(WireModel):
    """Structured trip generation request."""

    departure_location: str = Field(..., min_length=1)
    destinations: list[str] = Field(
        ..., description="Ordered route; entries may be descriptive goals, not place names"
    )
    start_date: date
    end_date: date
    transport_type: TransportPreference = TransportPreference.cheapest
    total_budget: str = Field(..., pattern=r"^\d+(\.\d{1,2})?$", description="Numeric amount")
    goals: str = ""

    @field_validator("destinations")
    @classmethod
    def drop_blank_destinations(cls, v: list[str]) -> list[str]:
        """Strip blanks; at least one destination must remain."""
        cleaned = [d.strip() for d in v if d.strip()]
        if not cleaned:
            raise ValueError("destinations must contain at least one non-blank entry")
        return cleaned

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure end >= start."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must be >= start_date")
        return v


class EditRequest(WireModel):
    """Free-text edit instruction for an existing trip."""

    instruction: str = Field(..., min_length=1)

    @field_validator("instruction")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("instruction must not be blank")
        return v.strip()


class ChatMessage(WireModel):
    """One turn of a planning conversation."""

    role: Literal["user", "model"]
    text: str
    is_system: bool = False


class ChatTranscript(WireModel):
    """Conversation to be finalized into a trip."""

    history: list[ChatMessage] = Field(..., min_length=1)
