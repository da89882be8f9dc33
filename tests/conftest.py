"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable
from datetime import date
from typing import Any

import pytest

from backend.app.config import Settings
from backend.app.db.inmemory import InMemoryKeyValueStore
from backend.app.db.snapshots import FreeTrialFlagStore, TripStore
from backend.app.llm.client import DeterministicStubClient
from backend.app.models.monetization import MonetizationState
from backend.app.models.trip import Activity, DailyPlan, Trip
from backend.app.monetization.gate import MonetizationGate, SimulatedPaymentProvider
from backend.app.orchestration.planner import TripPlanner


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from .env and the environment's payment delay."""
    return Settings(
        _env_file=None,
        database_url=None,
        openai_api_key=None,
        payment_simulated_delay_ms=0,
    )


def trip_payload(
    departure: str = "Paris",
    destination: str = "Rome",
    days: int = 3,
    start: date = date(2025, 6, 1),
) -> dict[str, Any]:
    """Camel-case trip payload as the generator would return it."""
    itinerary: list[dict[str, Any]] = []
    for i in range(days):
        activities: list[dict[str, Any]] = [
            {
                "time": "09:00",
                "title": f"Morning in {destination}",
                "description": "Walk",
                "location": destination,
                "type": "SIGHTSEEING",
            },
            {
                "time": "14:00",
                "title": "Lunch",
                "description": "Trattoria",
                "location": destination,
                "type": "RESTAURANT",
            },
        ]
        if i == days - 1:
            activities.append(
                {
                    "time": "18:00",
                    "title": f"Train back to {departure}",
                    "description": "Return leg",
                    "location": departure,
                    "type": "TRANSPORT",
                }
            )
        itinerary.append(
            {
                "day": i + 1,
                "date": date.fromordinal(start.toordinal() + i).isoformat(),
                "theme": f"Day {i + 1}",
                "activities": activities,
            }
        )

    return {
        "name": f"{destination} getaway",
        "departureLocation": departure,
        "destination": destination,
        "startDate": start.isoformat(),
        "endDate": date.fromordinal(start.toordinal() + days - 1).isoformat(),
        "summary": "A short trip",
        "itinerary": itinerary,
    }


@pytest.fixture
def payload_factory() -> Callable[..., dict[str, Any]]:
    """Factory for generator-style trip payloads."""
    return trip_payload


@pytest.fixture
def make_trip() -> Callable[..., Trip]:
    """Factory for stored trips."""

    def _make(trip_id: str = "trip-1", edit_count: int = 0, days: int = 3) -> Trip:
        return Trip.model_validate(
            {**trip_payload(days=days), "id": trip_id, "editCount": edit_count}
        )

    return _make


@pytest.fixture
def sample_trip(make_trip: Callable[..., Trip]) -> Trip:
    return make_trip()


@pytest.fixture
def activity_at() -> Callable[..., Activity]:
    def _make(time: str, title: str = "Thing", category: str = "other") -> Activity:
        return Activity(time=time, title=title, category=category)

    return _make


@pytest.fixture
def single_day_trip(activity_at: Callable[..., Activity]) -> Trip:
    """Trip whose only day holds activities at 09:00 and 14:00."""
    return Trip(
        id="one-day",
        name="Day trip",
        departure_location="Paris",
        destination="Versailles",
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 1),
        itinerary=[
            DailyPlan(
                day=1,
                date=date(2025, 6, 1),
                theme="Palace",
                activities=[activity_at("09:00", "Palace"), activity_at("14:00", "Gardens")],
            )
        ],
    )


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def payments() -> SimulatedPaymentProvider:
    return SimulatedPaymentProvider(delay_ms=0)


@pytest.fixture
def planner(
    settings: Settings, kv: InMemoryKeyValueStore, payments: SimulatedPaymentProvider
) -> TripPlanner:
    """Planner over fresh in-memory state with the deterministic generator."""
    flag_store = FreeTrialFlagStore(kv)
    return TripPlanner(
        store=TripStore(kv),
        gate=MonetizationGate.from_settings(settings, MonetizationState(), flag_store=flag_store),
        generator=DeterministicStubClient(reference_date=date(2025, 6, 1)),
        payments=payments,
        settings=settings,
    )
