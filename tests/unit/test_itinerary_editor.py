"""Tests for AI edit application and manual activity insertion."""

from collections.abc import Callable
from typing import Any

import pytest

from backend.app.errors import ActivityInsertionError, ItineraryValidationError
from backend.app.itinerary.editor import (
    apply_generated_edit,
    check_replacement,
    insert_manual_activity,
    parse_trip_draft,
    round_trip_problems,
)
from backend.app.models.common import ActivityCategory, GroundingLink
from backend.app.models.request import TripRequest
from backend.app.models.trip import ManualActivity, Trip


@pytest.fixture
def stored_trip(make_trip: Callable[..., Trip]) -> Trip:
    """Trip with core-assigned fields populated."""
    trip = make_trip(trip_id="kept-id", edit_count=1)
    return trip.model_copy(
        update={
            "image_url": "https://images.example/cover.jpg",
            "sources": [GroundingLink(uri="https://example.org", title="Guide")],
            "original_request": TripRequest(
                departure_location="Paris",
                destinations=["Rome"],
                start_date=trip.start_date,
                end_date=trip.end_date,
                total_budget="1500",
            ),
        }
    )


class TestApplyGeneratedEdit:
    """AI edit replaces the itinerary wholesale."""

    def test_preserves_core_fields_and_increments_counter(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that id, image, sources and original request survive an edit."""
        edited = payload_factory(destination="Florence", days=2)

        updated = apply_generated_edit(stored_trip, edited)

        assert updated.id == "kept-id"
        assert updated.image_url == stored_trip.image_url
        assert updated.sources == stored_trip.sources
        assert updated.original_request == stored_trip.original_request
        assert updated.edit_count == 2
        assert updated.destination == "Florence"
        assert len(updated.itinerary) == 2

    def test_ignores_identity_fields_in_payload(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that a payload cannot overwrite id or edit counter."""
        edited = {**payload_factory(), "id": "hijacked", "editCount": 99, "imageUrl": "x"}

        updated = apply_generated_edit(stored_trip, edited)

        assert updated.id == "kept-id"
        assert updated.edit_count == 2
        assert updated.image_url == stored_trip.image_url

    def test_input_trip_not_mutated(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that the caller's trip is left untouched."""
        before = stored_trip.model_dump()

        apply_generated_edit(stored_trip, payload_factory(destination="Naples"))

        assert stored_trip.model_dump() == before

    def test_empty_itinerary_rejected(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that a replacement without days is rejected."""
        edited = {**payload_factory(), "itinerary": []}

        with pytest.raises(ItineraryValidationError) as exc_info:
            apply_generated_edit(stored_trip, edited)

        assert exc_info.value.problems
        assert stored_trip.edit_count == 1

    def test_gap_in_day_numbering_rejected(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that days must be numbered 1..n in order."""
        edited = payload_factory(days=3)
        edited["itinerary"][1]["day"] = 5

        with pytest.raises(ItineraryValidationError, match="contiguous"):
            apply_generated_edit(stored_trip, edited)

    def test_blank_activity_title_rejected(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that every activity needs a title."""
        edited = payload_factory()
        edited["itinerary"][0]["activities"][0]["title"] = "  "

        with pytest.raises(ItineraryValidationError, match="missing title"):
            apply_generated_edit(stored_trip, edited)

    def test_missing_required_field_rejected(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that schema errors surface as validation problems."""
        edited = payload_factory()
        del edited["startDate"]

        with pytest.raises(ItineraryValidationError) as exc_info:
            apply_generated_edit(stored_trip, edited)

        assert any("startDate" in p for p in exc_info.value.problems)

    def test_round_trip_enforced_when_requested(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that dropping the return leg fails under the round-trip policy."""
        edited = payload_factory()
        edited["itinerary"][-1]["activities"] = edited["itinerary"][-1]["activities"][:2]

        # Accepted without the policy
        apply_generated_edit(stored_trip, edited)

        with pytest.raises(ItineraryValidationError, match="back to Paris"):
            apply_generated_edit(stored_trip, edited, enforce_round_trip=True)


class TestRoundTripProblems:
    """Last day must return to the departure location."""

    def test_transport_back_home_passes(self, payload_factory: Callable[..., dict[str, Any]]) -> None:
        draft = parse_trip_draft(payload_factory())
        assert round_trip_problems(draft) == []

    def test_match_is_case_insensitive(self, payload_factory: Callable[..., dict[str, Any]]) -> None:
        payload = payload_factory()
        last = payload["itinerary"][-1]["activities"][-1]
        last.update({"title": "Evening train", "location": "PARIS Gare de Lyon"})
        assert round_trip_problems(parse_trip_draft(payload)) == []

    def test_restaurant_mentioning_home_does_not_count(
        self, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that only flight or transport activities count as the return leg."""
        payload = payload_factory()
        payload["itinerary"][-1]["activities"][-1]["type"] = "RESTAURANT"
        assert round_trip_problems(parse_trip_draft(payload))

    def test_flight_home_passes(self, payload_factory: Callable[..., dict[str, Any]]) -> None:
        payload = payload_factory()
        payload["itinerary"][-1]["activities"][-1].update(
            {"type": "FLIGHT", "title": "FCO to CDG", "location": "", "description": "Fly to Paris"}
        )
        assert round_trip_problems(parse_trip_draft(payload)) == []

    def test_departure_with_country_matches_city(
        self, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that "Paris, France" is satisfied by a leg naming only Paris."""
        payload = payload_factory()
        payload["departureLocation"] = "Paris, France"
        draft = parse_trip_draft(payload)

        assert draft.itinerary[-1].activities[-1].title == "Train back to Paris"
        assert round_trip_problems(draft) == []


class TestCheckReplacement:
    def test_accepts_valid_payload(self, payload_factory: Callable[..., dict[str, Any]]) -> None:
        draft = check_replacement(payload_factory(), enforce_round_trip=True)
        assert draft.departure_location == "Paris"
        assert draft.itinerary[0].activities[0].category == ActivityCategory.sightseeing

    def test_collects_every_problem(self, payload_factory: Callable[..., dict[str, Any]]) -> None:
        payload = payload_factory(days=2)
        payload["itinerary"][0]["day"] = 2
        payload["itinerary"][1]["day"] = 1

        with pytest.raises(ItineraryValidationError):
            check_replacement(payload)

    def test_single_digit_hour_is_padded(
        self, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        payload = payload_factory(days=1)
        payload["itinerary"][0]["activities"][0]["time"] = "9:00"

        draft = check_replacement(payload)

        assert draft.itinerary[0].activities[0].time == "09:00"

    @pytest.mark.parametrize("time", ["noon", "25:00", "9.30", "09:60"])
    def test_malformed_time_rejected(
        self, payload_factory: Callable[..., dict[str, Any]], time: str
    ) -> None:
        payload = payload_factory()
        payload["itinerary"][0]["activities"][0]["time"] = time

        with pytest.raises(ItineraryValidationError, match="HH:MM"):
            check_replacement(payload)

    def test_padded_edit_sorts_with_later_insert(
        self, stored_trip: Trip, payload_factory: Callable[..., dict[str, Any]]
    ) -> None:
        """Test that a generated 9:00 stays before a manually added 10:00."""
        payload = payload_factory()
        payload["itinerary"][0]["activities"][0]["time"] = "9:00"
        edited = apply_generated_edit(stored_trip, payload)

        updated = insert_manual_activity(edited, 1, ManualActivity(time="10:00", title="Coffee"))

        times = [a.time for a in updated.itinerary[0].activities]
        assert times == ["09:00", "10:00", "14:00"]


class TestInsertManualActivity:
    """Manual insertion is a sorted splice into one day."""

    def test_inserted_between_existing_times(self, single_day_trip: Trip) -> None:
        """Test that 12:00 lands between 09:00 and 14:00."""
        updated = insert_manual_activity(
            single_day_trip, 1, ManualActivity(time="12:00", title="Lunch")
        )

        times = [a.time for a in updated.itinerary[0].activities]
        assert times == ["09:00", "12:00", "14:00"]
        assert len(updated.itinerary[0].activities) == 3

    def test_defaults_applied(self, single_day_trip: Trip) -> None:
        """Test empty description/location and no booking URL on new activities."""
        updated = insert_manual_activity(
            single_day_trip, 1, ManualActivity(time="12:00", title="Lunch")
        )

        lunch = updated.itinerary[0].activities[1]
        assert lunch.category == ActivityCategory.other
        assert lunch.description == ""
        assert lunch.location == ""
        assert not lunch.booking_url

    def test_equal_time_goes_after_existing(self, single_day_trip: Trip) -> None:
        """Test stable ordering for equal times."""
        updated = insert_manual_activity(
            single_day_trip, 1, ManualActivity(time="09:00", title="Coffee")
        )

        titles = [a.title for a in updated.itinerary[0].activities]
        assert titles == ["Palace", "Coffee", "Gardens"]

    def test_other_days_keep_identity(self, sample_trip: Trip) -> None:
        """Test that untouched days are the very same objects."""
        updated = insert_manual_activity(
            sample_trip, 2, ManualActivity(time="20:00", title="Gelato", category="restaurant")
        )

        assert updated.itinerary[0] is sample_trip.itinerary[0]
        assert updated.itinerary[2] is sample_trip.itinerary[2]
        assert updated.itinerary[1] is not sample_trip.itinerary[1]
        assert updated.edit_count == sample_trip.edit_count

    def test_input_trip_not_mutated(self, single_day_trip: Trip) -> None:
        insert_manual_activity(single_day_trip, 1, ManualActivity(time="12:00", title="Lunch"))
        assert len(single_day_trip.itinerary[0].activities) == 2

    @pytest.mark.parametrize("day", [0, 2, -1])
    def test_day_out_of_range(self, single_day_trip: Trip, day: int) -> None:
        with pytest.raises(ActivityInsertionError, match="out of range"):
            insert_manual_activity(single_day_trip, day, ManualActivity(time="12:00", title="X"))

    @pytest.mark.parametrize(
        ("time", "title", "message"),
        [
            ("12:00", None, "title"),
            ("12:00", "   ", "title"),
            (None, "Lunch", "time"),
            ("", "Lunch", "time"),
            ("noon", "Lunch", "HH:MM"),
            ("24:00", "Lunch", "HH:MM"),
        ],
    )
    def test_missing_or_bad_fields(
        self, single_day_trip: Trip, time: str | None, title: str | None, message: str
    ) -> None:
        with pytest.raises(ActivityInsertionError, match=message):
            insert_manual_activity(single_day_trip, 1, ManualActivity(time=time, title=title))

    def test_title_and_time_are_trimmed(self, single_day_trip: Trip) -> None:
        updated = insert_manual_activity(
            single_day_trip, 1, ManualActivity(time=" 12:00 ", title=" Lunch ")
        )
        lunch = updated.itinerary[0].activities[1]
        assert (lunch.time, lunch.title) == ("12:00", "Lunch")

    def test_single_digit_hour_is_padded(self, single_day_trip: Trip) -> None:
        updated = insert_manual_activity(
            single_day_trip, 1, ManualActivity(time="9:30", title="Coffee")
        )

        times = [a.time for a in updated.itinerary[0].activities]
        assert times == ["09:00", "09:30", "14:00"]
