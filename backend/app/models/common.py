"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model speaking camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActivityCategory(str, Enum):
    """Type of scheduled activity."""

    flight = "flight"
    hotel = "hotel"
    restaurant = "restaurant"
    sightseeing = "sightseeing"
    transport = "transport"
    other = "other"


# Categories for which a fallback booking link is synthesized
HIGH_BOOKING_INTENT = frozenset(
    {ActivityCategory.flight, ActivityCategory.hotel, ActivityCategory.transport}
)


class TransportPreference(str, Enum):
    """Preferred way of getting between cities."""

    own_car = "Own car"
    plane = "Plane"
    train = "Train"
    bus = "Bus"
    rental_car = "Rental car"
    cheapest = "Cheapest available"
    public = "Public transport"


class GroundingLink(WireModel):
    """Source reference backing generated content."""

    uri: str
    title: str
