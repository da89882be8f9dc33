"""Itinerary editing: whole-trip AI edits and manual activity insertion.

AI edits return a complete replacement itinerary, so the replacement is
validated and then trusted as the new source of truth. Manual insertion is a
local splice into one day; every other day keeps its object identity.

Both operations are pure with respect to their input trip: the caller's
object is never mutated and a rejected operation leaves it untouched.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from backend.app.errors import ActivityInsertionError, ItineraryValidationError
from backend.app.models.common import ActivityCategory
from backend.app.models.trip import (
    TIME_OF_DAY,
    Activity,
    ManualActivity,
    Trip,
    TripDraft,
    itinerary_shape_problems,
    pad_time_of_day,
)

logger = logging.getLogger(__name__)

RETURN_LEG_CATEGORIES = frozenset({ActivityCategory.flight, ActivityCategory.transport})


def validation_problems(exc: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into readable problem strings."""
    problems: list[str] = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        problems.append(f"{loc}: {message}" if loc else message)
    return problems


def parse_trip_draft(payload: Mapping[str, Any]) -> TripDraft:
    """Validate a generator payload against the trip schema.

    Raises:
        ItineraryValidationError: If the payload does not describe a valid trip
    """
    try:
        return TripDraft.model_validate(payload)
    except ValidationError as e:
        raise ItineraryValidationError(validation_problems(e)) from e


def round_trip_problems(draft: TripDraft) -> list[str]:
    """Check that the last day brings the traveller back home.

    The last day must contain a flight or transport activity mentioning the
    departure city in its title, location or description. The city is the
    first comma-separated part of the departure location, so "Paris, France"
    is satisfied by a leg that only says "Paris".
    """
    if not draft.itinerary:
        return []

    home = draft.departure_location.split(",")[0].strip().lower()
    if not home:
        return ["departure location is blank"]

    for activity in draft.itinerary[-1].activities:
        if activity.category not in RETURN_LEG_CATEGORIES:
            continue
        haystack = " ".join(
            part for part in (activity.title, activity.location, activity.description) if part
        ).lower()
        if home in haystack:
            return []

    return [f"last day must include a flight or transport back to {draft.departure_location}"]


def check_replacement(
    edited: TripDraft | Mapping[str, Any], *, enforce_round_trip: bool = False
) -> TripDraft:
    """Validate a replacement trip, returning it as a TripDraft.

    Raises:
        ItineraryValidationError: On any shape or policy problem
    """
    draft = edited if isinstance(edited, TripDraft) else parse_trip_draft(edited)

    # Drafts built with model_construct skip validators, so check shape again
    problems = itinerary_shape_problems(draft.itinerary)
    if enforce_round_trip and not problems:
        problems = round_trip_problems(draft)
    if problems:
        raise ItineraryValidationError(problems)
    return draft


def apply_generated_edit(
    trip: Trip,
    edited: TripDraft | Mapping[str, Any],
    *,
    enforce_round_trip: bool = False,
) -> Trip:
    """Replace the itinerary-bearing fields of a trip with an edited version.

    The trip's id, cover image, sources and original request are kept; the
    edit counter goes up by exactly one.

    Args:
        trip: Current trip (not mutated)
        edited: Complete replacement returned by the generative capability
        enforce_round_trip: Require the last day to return to the departure

    Returns:
        New Trip

    Raises:
        ItineraryValidationError: If the replacement is invalid; trip is untouched
    """
    draft = check_replacement(edited, enforce_round_trip=enforce_round_trip)

    return Trip(
        **draft.model_dump(include=set(TripDraft.model_fields)),
        id=trip.id,
        image_url=trip.image_url,
        sources=trip.sources,
        original_request=trip.original_request,
        edit_count=trip.edit_count + 1,
    )


def insert_manual_activity(trip: Trip, day: int, activity: ManualActivity) -> Trip:
    """Insert a user-entered activity into one day and re-sort it by time.

    Equal-time activities keep their relative order; the new activity goes
    after any existing activity with the same time.

    Args:
        trip: Current trip (not mutated)
        day: 1-based day number
        activity: User-entered activity

    Returns:
        New Trip sharing every untouched DailyPlan with the input

    Raises:
        ActivityInsertionError: If the day does not exist or title/time is missing
    """
    plan = trip.day_plan(day)
    if plan is None:
        raise ActivityInsertionError(
            f"day {day} is out of range (trip has {len(trip.itinerary)} days)"
        )

    title = (activity.title or "").strip()
    time = pad_time_of_day(activity.time or "")
    if not title:
        raise ActivityInsertionError("activity title is required")
    if not time:
        raise ActivityInsertionError("activity time is required")
    if not TIME_OF_DAY.match(time):
        raise ActivityInsertionError(f"activity time must be HH:MM, got {time!r}")

    new_activity = Activity(
        time=time,
        title=title,
        description=activity.description,
        location=activity.location,
        category=activity.category,
        cost_estimate="",
        booking_url="",
    )

    activities = sorted([*plan.activities, new_activity], key=lambda a: a.time)
    itinerary = list(trip.itinerary)
    itinerary[day - 1] = plan.model_copy(update={"activities": activities})

    logger.debug(f"Inserted '{title}' at {time} on day {day} of trip {trip.id}")
    return trip.model_copy(update={"itinerary": itinerary})
