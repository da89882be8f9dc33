"""Trip endpoints - generation, AI edits, manual insertion and links."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status

from backend.app.api.deps import get_planner
from backend.app.booking.links import ActivityLinks
from backend.app.errors import (
    ActivityInsertionError,
    GateStateError,
    GenerationError,
    ItineraryValidationError,
    PaymentDeclinedError,
    TripConflictError,
    TripError,
    TripNotFoundError,
    UnknownRequestError,
)
from backend.app.models.common import WireModel
from backend.app.models.monetization import GatedKind, GateStatus, MonetizationSummary
from backend.app.models.request import ChatTranscript, EditRequest, TripRequest
from backend.app.models.trip import ManualActivity, Trip
from backend.app.monetization.gate import GatedRequest
from backend.app.orchestration.planner import TripPlanner

router = APIRouter(tags=["trips"])

Planner = Annotated[TripPlanner, Depends(get_planner)]


class GatedResponse(WireModel):
    """Envelope for gated generation and edit requests."""

    request_id: str
    kind: GatedKind
    status: GateStatus
    price_cents: int
    currency: str
    trip: Trip | None = None
    error: str | None = None


def to_gated_response(gated: GatedRequest[Trip], currency: str) -> GatedResponse:
    return GatedResponse(
        request_id=gated.request_id,
        kind=gated.kind,
        status=gated.status,
        price_cents=gated.price_cents,
        currency=currency,
        trip=gated.result,
        error=gated.error,
    )


def to_http_error(exc: TripError) -> HTTPException:
    """Map core errors to HTTP errors."""
    if isinstance(exc, TripNotFoundError | UnknownRequestError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, GenerationError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    if isinstance(exc, ItineraryValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Edit did not apply", "problems": exc.problems},
        )
    if isinstance(exc, ActivityInsertionError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, PaymentDeclinedError):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    if isinstance(exc, GateStateError | TripConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _respond(gated: GatedRequest[Trip], planner: TripPlanner, response: Response) -> GatedResponse:
    if gated.status == GateStatus.EXECUTED:
        response.status_code = status.HTTP_201_CREATED
    else:
        response.status_code = status.HTTP_202_ACCEPTED
    return to_gated_response(gated, planner.gate.currency)


@router.get("/trips", response_model=list[Trip], response_model_by_alias=True)
async def list_trips(planner: Planner) -> list[Trip]:
    """List trips, most recently created first."""
    return list(planner.list_trips())


@router.get("/trips/{trip_id}", response_model=Trip, response_model_by_alias=True)
async def get_trip(trip_id: str, planner: Planner) -> Trip:
    """Get one trip."""
    try:
        return planner.get_trip(trip_id)
    except TripError as e:
        raise to_http_error(e) from e


@router.delete("/trips/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(trip_id: str, planner: Planner) -> Response:
    """Delete a trip."""
    try:
        planner.delete_trip(trip_id)
    except TripError as e:
        raise to_http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/trips", response_model=GatedResponse, response_model_by_alias=True)
async def create_trip(request: TripRequest, planner: Planner, response: Response) -> GatedResponse:
    """Generate a trip.

    Returns 201 with the trip when it ran free, 202 when payment is needed.
    """
    try:
        gated = await planner.request_trip(request)
    except TripError as e:
        raise to_http_error(e) from e
    return _respond(gated, planner, response)


@router.post("/trips/from-chat", response_model=GatedResponse, response_model_by_alias=True)
async def create_trip_from_chat(
    transcript: ChatTranscript, planner: Planner, response: Response
) -> GatedResponse:
    """Finalize a planning conversation into a trip (gated like generation)."""
    try:
        gated = await planner.request_trip_from_chat(transcript.history)
    except TripError as e:
        raise to_http_error(e) from e
    return _respond(gated, planner, response)


@router.post("/trips/{trip_id}/edits", response_model=GatedResponse, response_model_by_alias=True)
async def edit_trip(
    trip_id: str, edit: EditRequest, planner: Planner, response: Response
) -> GatedResponse:
    """Apply a free-text AI edit to a trip."""
    try:
        gated = await planner.request_edit(trip_id, edit.instruction)
    except TripError as e:
        raise to_http_error(e) from e
    return _respond(gated, planner, response)


@router.post(
    "/trips/{trip_id}/days/{day}/activities",
    response_model=Trip,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def add_activity(
    trip_id: str,
    day: Annotated[int, Path(description="1-based day number")],
    activity: ManualActivity,
    planner: Planner,
) -> Trip:
    """Insert a user-entered activity into one day."""
    try:
        return planner.add_activity(trip_id, day, activity)
    except TripError as e:
        raise to_http_error(e) from e


@router.get(
    "/trips/{trip_id}/links", response_model=list[ActivityLinks], response_model_by_alias=True
)
async def trip_links(trip_id: str, planner: Planner) -> list[ActivityLinks]:
    """Resolved booking and map links for every activity."""
    try:
        return planner.trip_links(trip_id)
    except TripError as e:
        raise to_http_error(e) from e


@router.post(
    "/payments/{request_id}/confirm",
    response_model=GatedResponse,
    response_model_by_alias=True,
    tags=["payments"],
)
async def confirm_payment(request_id: str, planner: Planner, response: Response) -> GatedResponse:
    """Pay for a pending request and run it."""
    try:
        gated = await planner.confirm_payment(request_id)
    except TripError as e:
        raise to_http_error(e) from e
    return _respond(gated, planner, response)


@router.post(
    "/payments/{request_id}/cancel",
    response_model=GatedResponse,
    response_model_by_alias=True,
    tags=["payments"],
)
async def cancel_payment(request_id: str, planner: Planner) -> GatedResponse:
    """Decline to pay; the request is cancelled and nothing changes."""
    try:
        gated = planner.cancel(request_id)
    except TripError as e:
        raise to_http_error(e) from e
    return to_gated_response(gated, planner.gate.currency)


@router.get("/monetization", response_model=MonetizationSummary, response_model_by_alias=True)
async def monetization(planner: Planner) -> MonetizationSummary:
    """Trial eligibility and prices."""
    return planner.gate.summary()
