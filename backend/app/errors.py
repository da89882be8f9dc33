"""Error kinds raised by the itinerary core.

Every error is raised before anything is committed, so the trip collection
and the monetization state are left exactly as they were.
"""


class TripError(Exception):
    """Base class for itinerary core errors."""

    pass


class GenerationError(TripError):
    """Generative capability returned no parseable or valid trip."""

    pass


class ItineraryValidationError(TripError):
    """Replacement itinerary produced by an edit is structurally invalid."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("; ".join(problems) or "invalid itinerary")


class PaymentDeclinedError(TripError):
    """Gated request was cancelled or its payment was declined."""

    pass


class ActivityInsertionError(TripError):
    """Manual insertion targets a missing day or omits required fields."""

    pass


class TripNotFoundError(TripError):
    """No trip with the given id."""

    pass


class GateStateError(TripError):
    """Operation is not valid for the gated request's current status."""

    pass


class TripConflictError(TripError):
    """Stored trip changed since the caller read it."""

    pass


class UnknownRequestError(TripError):
    """No gated request with the given id is awaiting payment."""

    pass
