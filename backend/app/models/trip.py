"""Trip models - the itinerary as generated, stored and edited."""

import re
from datetime import date
from typing import Any

from pydantic import Field, field_validator, model_validator

from backend.app.models.common import ActivityCategory, GroundingLink, WireModel
from backend.app.models.request import TripRequest

TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_SINGLE_DIGIT_HOUR = re.compile(r"^(\d):([0-5]\d)$")


def pad_time_of_day(value: str) -> str:
    """Strip and zero-pad a single-digit hour ("9:00" -> "09:00")."""
    value = value.strip()
    match = _SINGLE_DIGIT_HOUR.match(value)
    if match:
        return f"0{match.group(1)}:{match.group(2)}"
    return value


class Activity(WireModel):
    """Single scheduled item within a day.

    Identity is positional: an activity is addressed by its day and index.
    """

    time: str = Field(..., description="Local time of day, HH:MM")
    title: str
    description: str = ""
    location: str | None = None
    category: ActivityCategory = Field(..., alias="type")
    cost_estimate: str | None = None
    booking_url: str | None = None
    grounding_urls: list[GroundingLink] = Field(default_factory=list)

    @field_validator("time", mode="before")
    @classmethod
    def pad_hour(cls, v: Any) -> Any:
        """Zero-pad generated times so they sort as strings."""
        if isinstance(v, str):
            return pad_time_of_day(v)
        return v

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        """Accept upper-case categories as emitted by the generator."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class ManualActivity(WireModel):
    """User-entered activity before validation; title and time may be missing."""

    time: str | None = None
    title: str | None = None
    description: str = ""
    location: str = ""
    category: ActivityCategory = Field(ActivityCategory.other, alias="type")

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class DailyPlan(WireModel):
    """One calendar day of the itinerary."""

    day: int = Field(..., description="1-based, matches position in the itinerary")
    date: date
    theme: str = ""
    activities: list[Activity] = Field(default_factory=list)


def itinerary_shape_problems(days: list[DailyPlan]) -> list[str]:
    """List every structural problem in an itinerary.

    An itinerary is well-formed when it is non-empty, its day numbers run
    1, 2, ..., n in order, and every activity has an HH:MM time and a title.
    """
    if not days:
        return ["itinerary must contain at least one day"]

    problems: list[str] = []
    for position, plan in enumerate(days, start=1):
        if plan.day != position:
            problems.append(
                f"day numbering must be contiguous from 1: found day {plan.day} at position {position}"
            )
        for index, activity in enumerate(plan.activities, start=1):
            if not activity.time.strip():
                problems.append(f"day {position} activity {index}: missing time")
            elif not TIME_OF_DAY.match(activity.time):
                problems.append(
                    f"day {position} activity {index}: time must be HH:MM, got {activity.time!r}"
                )
            if not activity.title.strip():
                problems.append(f"day {position} activity {index}: missing title")
    return problems


class TripDraft(WireModel):
    """Trip as returned by the generative capability (no core-assigned fields)."""

    name: str
    departure_location: str
    destination: str
    start_date: date
    end_date: date
    summary: str = ""
    itinerary: list[DailyPlan]

    @model_validator(mode="after")
    def validate_itinerary_shape(self) -> "TripDraft":
        """Reject empty itineraries, gaps in day numbering and blank activities."""
        problems = itinerary_shape_problems(self.itinerary)
        if problems:
            raise ValueError("; ".join(problems))
        return self


class Trip(TripDraft):
    """Stored trip with identity and core-assigned fields."""

    id: str
    image_url: str = ""
    sources: list[GroundingLink] = Field(default_factory=list)
    edit_count: int = Field(0, ge=0)
    original_request: TripRequest | None = None

    def day_plan(self, day: int) -> DailyPlan | None:
        """Return the plan for a 1-based day number, or None if out of range."""
        if 1 <= day <= len(self.itinerary):
            return self.itinerary[day - 1]
        return None
