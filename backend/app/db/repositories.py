"""Repository protocol interfaces for data access."""

from collections.abc import Sequence
from typing import Protocol

from backend.app.models.trip import Trip


class KeyValueStore(Protocol):
    """Opaque store of whole snapshots keyed by name."""

    def load(self, key: str) -> str | None:
        """Load a snapshot.

        Args:
            key: Snapshot key

        Returns:
            Stored value or None if never written
        """
        ...

    def save(self, key: str, value: str) -> None:
        """Replace a snapshot.

        Args:
            key: Snapshot key
            value: Complete serialized snapshot
        """
        ...


class TripRepository(Protocol):
    """Repository for the trip collection."""

    def list(self) -> Sequence[Trip]:
        """List trips, most recently created first."""
        ...

    def get(self, trip_id: str) -> Trip | None:
        """Get trip by id, or None if not found."""
        ...

    def upsert(self, trip: Trip, *, expected_edit_count: int | None = None) -> None:
        """Replace the trip with the same id, or prepend it if new.

        Args:
            trip: Complete trip snapshot
            expected_edit_count: If given, the stored trip's edit counter must match
        """
        ...

    def remove(self, trip_id: str) -> bool:
        """Remove a trip.

        Returns:
            True if a trip was removed
        """
        ...


class FreeTrialRepository(Protocol):
    """Repository for the global free-trial flag."""

    def load_free_trial_used(self) -> bool:
        """Load the persisted flag (False if never written)."""
        ...

    def save_free_trial_used(self, used: bool) -> None:
        """Persist the flag."""
        ...
