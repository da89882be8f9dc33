"""Booking link resolution.

Pure functions: the same activity and trip dates always yield the same link,
and nothing here touches I/O or global state.

Policy:
    1. A supplied URL is trusted when it is non-empty, is not a generic
       web-search results page, and is longer than a plausibility threshold.
    2. Otherwise high booking intent categories (flight, hotel, transport)
       get a search URL built from a per-category template.
    3. Everything else has no actionable booking link.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from urllib.parse import quote

from backend.app.models.common import ActivityCategory, WireModel
from backend.app.models.trip import Activity, Trip

DEFAULT_MIN_URL_LENGTH = 15
DEFAULT_BLOCKED_FRAGMENT = "google.com/search"


@dataclass(frozen=True)
class TripDates:
    """Trip date range used to key fallback searches."""

    start: date
    end: date

    @classmethod
    def of(cls, trip: Trip) -> "TripDates":
        return cls(start=trip.start_date, end=trip.end_date)


def _encode(value: str) -> str:
    """Percent-encode a query component (encodeURIComponent semantics)."""
    return quote(value, safe="-_.!~*'()")


def _flight_search(activity: Activity, dates: TripDates) -> str:
    return (
        "https://www.skyscanner.com/transport/flights/search"
        f"?q={_encode(activity.title)}&departure_date={dates.start.isoformat()}"
    )


def _stay_search(activity: Activity, dates: TripDates) -> str:
    query = f"{activity.title} {activity.location or ''}"
    return (
        "https://www.booking.com/searchresults.html"
        f"?ss={_encode(query)}"
        f"&checkin={dates.start.isoformat()}&checkout={dates.end.isoformat()}"
    )


def _transit_search(activity: Activity, dates: TripDates) -> str:
    return (
        f"https://www.thetrainline.com/search/{_encode(activity.location or '')}"
        f"?departureDate={dates.start.isoformat()}"
    )


FALLBACK_TEMPLATES: dict[ActivityCategory, Callable[[Activity, TripDates], str]] = {
    ActivityCategory.flight: _flight_search,
    ActivityCategory.hotel: _stay_search,
    ActivityCategory.transport: _transit_search,
}


def is_plausible_booking_url(
    url: str | None,
    *,
    min_length: int = DEFAULT_MIN_URL_LENGTH,
    blocked_fragment: str = DEFAULT_BLOCKED_FRAGMENT,
) -> bool:
    """Return True if a supplied URL looks like a real deep link, not a stub."""
    if not url or not url.strip():
        return False
    if blocked_fragment and blocked_fragment in url:
        return False
    return len(url) > min_length


def resolve_booking_link(
    activity: Activity,
    dates: TripDates,
    *,
    min_length: int = DEFAULT_MIN_URL_LENGTH,
    blocked_fragment: str = DEFAULT_BLOCKED_FRAGMENT,
) -> str | None:
    """Resolve the booking link shown for an activity.

    Args:
        activity: Activity to resolve
        dates: Trip start/end dates
        min_length: Supplied URLs must be strictly longer than this
        blocked_fragment: Supplied URLs containing this are ignored

    Returns:
        Supplied URL, synthesized fallback URL, or None
    """
    if is_plausible_booking_url(
        activity.booking_url, min_length=min_length, blocked_fragment=blocked_fragment
    ):
        return activity.booking_url

    template = FALLBACK_TEMPLATES.get(activity.category)
    if template is None:
        return None
    return template(activity, dates)


def maps_route_url(location: str) -> str:
    """Directions URL ending at the given location."""
    return f"https://www.google.com/maps/dir/?api=1&destination={_encode(location)}"


def has_mappable_location(activity: Activity) -> bool:
    """Locations of three characters or fewer are too vague to route to."""
    return bool(activity.location) and len(activity.location.strip()) > 3


class ActivityLinks(WireModel):
    """Resolved links for one activity, addressed by day and position."""

    day: int
    index: int
    title: str
    category: ActivityCategory
    booking_url: str | None
    maps_url: str | None


def collect_trip_links(
    trip: Trip,
    *,
    min_length: int = DEFAULT_MIN_URL_LENGTH,
    blocked_fragment: str = DEFAULT_BLOCKED_FRAGMENT,
) -> list[ActivityLinks]:
    """Resolve booking and map links for every activity of a trip."""
    dates = TripDates.of(trip)
    links: list[ActivityLinks] = []
    for plan in trip.itinerary:
        for index, activity in enumerate(plan.activities):
            links.append(
                ActivityLinks(
                    day=plan.day,
                    index=index,
                    title=activity.title,
                    category=activity.category,
                    booking_url=resolve_booking_link(
                        activity, dates, min_length=min_length, blocked_fragment=blocked_fragment
                    ),
                    maps_url=maps_route_url(activity.location or "")
                    if has_mappable_location(activity)
                    else None,
                )
            )
    return links
