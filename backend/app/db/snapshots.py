"""Snapshot-backed stores for trips and the free-trial flag.

Each store loads its value once on construction and writes the whole value
back on every mutation. The in-memory view is swapped only after the write
succeeds, so readers never observe a partially applied change.
"""

import logging

from pydantic import TypeAdapter, ValidationError

from backend.app.db.repositories import KeyValueStore
from backend.app.errors import TripConflictError
from backend.app.models.trip import Trip
from backend.app.utils.logging import StructuredEventLogger

logger = logging.getLogger(__name__)

_TRIPS = TypeAdapter(list[Trip])


class TripStore:
    """Owns the trip collection and persists it as one snapshot."""

    def __init__(
        self,
        kv: KeyValueStore,
        key: str = "voyager_trips",
        event_logger: StructuredEventLogger | None = None,
    ) -> None:
        self._kv = kv
        self._key = key
        self._events = event_logger or StructuredEventLogger()
        self._trips: tuple[Trip, ...] = self._load()

    def _load(self) -> tuple[Trip, ...]:
        raw = self._kv.load(self._key)
        if raw is None:
            return ()
        try:
            return tuple(_TRIPS.validate_json(raw))
        except (ValidationError, ValueError) as e:
            logger.error(f"Failed to load trips snapshot '{self._key}': {e}")
            return ()

    def _commit(self, trips: tuple[Trip, ...]) -> None:
        self._kv.save(self._key, _TRIPS.dump_json(list(trips), by_alias=True).decode())
        self._trips = trips

    def list(self) -> tuple[Trip, ...]:
        """List trips, most recently created first."""
        return self._trips

    def get(self, trip_id: str) -> Trip | None:
        """Get trip by id."""
        for trip in self._trips:
            if trip.id == trip_id:
                return trip
        return None

    def upsert(self, trip: Trip, *, expected_edit_count: int | None = None) -> None:
        """Replace the trip with the same id in place, else prepend it.

        Raises:
            TripConflictError: If expected_edit_count is given and does not match
        """
        current = self._trips
        index = next((i for i, t in enumerate(current) if t.id == trip.id), None)

        if expected_edit_count is not None:
            stored_count = current[index].edit_count if index is not None else None
            if stored_count != expected_edit_count:
                raise TripConflictError(
                    f"trip {trip.id} edit count is {stored_count}, expected {expected_edit_count}"
                )

        if index is None:
            updated = (trip, *current)
        else:
            updated = (*current[:index], trip, *current[index + 1 :])

        self._commit(updated)
        self._events.log_commit(trip, operation="insert" if index is None else "replace")

    def remove(self, trip_id: str) -> bool:
        """Remove a trip; returns False if it did not exist."""
        remaining = tuple(t for t in self._trips if t.id != trip_id)
        if len(remaining) == len(self._trips):
            return False
        self._commit(remaining)
        logger.info(f"Removed trip {trip_id}")
        return True


class FreeTrialFlagStore:
    """Persists the global free-trial flag as "true"/"false"."""

    def __init__(self, kv: KeyValueStore, key: str = "voyager_free_trial_used") -> None:
        self._kv = kv
        self._key = key

    def load_free_trial_used(self) -> bool:
        """Load the persisted flag."""
        return self._kv.load(self._key) == "true"

    def save_free_trial_used(self, used: bool) -> None:
        """Persist the flag."""
        self._kv.save(self._key, "true" if used else "false")
