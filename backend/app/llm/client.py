"""LLM client for trip generation and editing with OpenAI integration.

Security: Reads API key from environment only, never hardcoded.
Provides deterministic stub when no key present for testing.

Clients return the raw parsed JSON object; validating it against the trip
schema is the itinerary core's job.
"""

import json
import logging
import re
from datetime import date, timedelta
from typing import Any, Protocol

from openai import AsyncOpenAI

from backend.app.config import Settings, get_settings
from backend.app.errors import GenerationError
from backend.app.models.common import ActivityCategory, TransportPreference
from backend.app.models.request import ChatMessage, TripRequest
from backend.app.models.trip import Trip, TripDraft

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json\n?([\s\S]*?)\n?```")
_BRACED = re.compile(r"\{[\s\S]*\}")


def extract_json(text: str) -> dict[str, Any] | None:
    """Parse a JSON object out of model output.

    Tries a fenced ```json block, then the outermost {...} span, then the
    whole text.

    Returns:
        Parsed object, or None if nothing parses to a JSON object
    """
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidate = fenced.group(1)
    else:
        braced = _BRACED.search(text)
        candidate = braced.group(0) if braced else text

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        logger.error(f"Failed to parse AI response as JSON: {text[:200]!r}")
        return None

    if not isinstance(parsed, dict):
        logger.error("AI response JSON is not an object")
        return None
    return parsed


class TripGenerator(Protocol):
    """Protocol for generative planning capability implementations."""

    async def generate_trip(self, request: TripRequest) -> dict[str, Any]:
        """Plan a trip from a structured request.

        Args:
            request: Departure, route, dates, transport, budget, goals

        Returns:
            Parsed trip object (camelCase trip schema, no id)

        Raises:
            GenerationError: If no parseable result was produced
        """
        ...

    async def edit_trip(self, trip: Trip, instruction: str) -> dict[str, Any]:
        """Return a complete replacement for a trip given a free-text instruction."""
        ...

    async def finalize_from_chat(self, history: list[ChatMessage]) -> dict[str, Any]:
        """Turn a planning conversation into a trip."""
        ...


def _city_for_day(destinations: list[str], day_index: int, total_days: int) -> str:
    """Spread destinations evenly across the trip, in route order."""
    position = day_index * len(destinations) // total_days
    return destinations[min(position, len(destinations) - 1)]


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required).

    Builds a plausible itinerary that follows the route in order and ends
    with a return leg to the departure location.
    """

    def __init__(self, reference_date: date | None = None) -> None:
        self._reference_date = reference_date

    def _leg_category(self, transport: TransportPreference) -> ActivityCategory:
        if transport == TransportPreference.plane:
            return ActivityCategory.flight
        return ActivityCategory.transport

    def _build(
        self,
        *,
        departure: str,
        destinations: list[str],
        start: date,
        end: date,
        transport: TransportPreference,
        goals: str,
    ) -> dict[str, Any]:
        total_days = (end - start).days + 1
        leg = self._leg_category(transport).value.upper()
        days: list[dict[str, Any]] = []

        previous_city = departure
        for index in range(total_days):
            city = _city_for_day(destinations, index, total_days)
            activities: list[dict[str, Any]] = []

            if city != previous_city:
                activities.append(
                    {
                        "time": "08:00",
                        "title": f"{previous_city} to {city}",
                        "description": f"Travel from {previous_city} to {city}",
                        "location": city,
                        "type": leg,
                    }
                )
                activities.append(
                    {
                        "time": "15:00",
                        "title": f"Check in, {city}",
                        "description": "Hotel check-in",
                        "location": city,
                        "type": "HOTEL",
                    }
                )
            activities.append(
                {
                    "time": "11:00",
                    "title": f"Explore {city}",
                    "description": goals or "Sightseeing",
                    "location": city,
                    "type": "SIGHTSEEING",
                }
            )
            activities.append(
                {
                    "time": "19:30",
                    "title": f"Dinner in {city}",
                    "description": "Local cuisine",
                    "location": city,
                    "type": "RESTAURANT",
                }
            )
            if index == total_days - 1:
                activities.append(
                    {
                        "time": "21:30",
                        "title": f"Return to {departure}",
                        "description": f"Travel home from {city} to {departure}",
                        "location": departure,
                        "type": leg,
                    }
                )

            activities.sort(key=lambda a: a["time"])
            days.append(
                {
                    "day": index + 1,
                    "date": (start + timedelta(days=index)).isoformat(),
                    "theme": city,
                    "activities": activities,
                }
            )
            previous_city = city

        route = " -> ".join(destinations)
        return {
            "name": f"{departure} to {route}",
            "departureLocation": departure,
            "destination": route,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "summary": f"{total_days}-day trip from {departure} via {route}.",
            "itinerary": days,
        }

    async def generate_trip(self, request: TripRequest) -> dict[str, Any]:
        """Generate deterministic stub trip."""
        return self._build(
            departure=request.departure_location,
            destinations=request.destinations,
            start=request.start_date,
            end=request.end_date,
            transport=request.transport_type,
            goals=request.goals,
        )

    async def edit_trip(self, trip: Trip, instruction: str) -> dict[str, Any]:
        """Echo the current trip back with the instruction noted in the summary."""
        payload = trip.model_dump(mode="json", by_alias=True, include=set(TripDraft.model_fields))
        payload["summary"] = f"{trip.summary} (Updated: {instruction})".strip()
        return payload

    async def finalize_from_chat(self, history: list[ChatMessage]) -> dict[str, Any]:
        """Plan a three-day trip to the last thing the user asked about."""
        user_turns = [m.text.strip() for m in history if m.role == "user" and m.text.strip()]
        if not user_turns:
            raise GenerationError("conversation has no user messages")

        start = self._reference_date or date.today()
        return self._build(
            departure="Home",
            destinations=[user_turns[-1][:60]],
            start=start,
            end=start + timedelta(days=2),
            transport=TransportPreference.cheapest,
            goals="",
        )


SYSTEM_INSTRUCTION = """You are Voyager, a world-class travel agent.

STRICT BOOKING RULES:
1. Every 'bookingUrl' MUST include the trip dates and cities.
2. For buses and trains prefer reliable carriers or aggregators.
3. Do not guess URLs. If no specific deep link exists, leave 'bookingUrl' empty.

PLANNING RULES:
- ROUND TRIP: The journey MUST end by returning to the departure location. The last day
  must include a FLIGHT or TRANSPORT activity back home that names the departure location.
- DESTINATION SEQUENCE: Follow the user's city sequence exactly before returning home.
  Destinations may be descriptive goals rather than place names; pick fitting places.
- THEMATIC RELEVANCE: Match activities to the user's goals.
- REALISM: Max 4-5 activities per day. Account for transit.
- LANGUAGE: Respond in the language used by the user.

OUTPUT: Respond with a single JSON object matching this schema, with days numbered
1..N in order and activity 'type' one of FLIGHT, HOTEL, RESTAURANT, SIGHTSEEING,
TRANSPORT, OTHER:
"""


class OpenAIClient:
    """OpenAI-backed generative planning client."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 60.0):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            timeout: Request timeout in seconds
        """
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        self.model = model

    def _build_system_prompt(self) -> str:
        schema = json.dumps(TripDraft.model_json_schema(by_alias=True))
        return SYSTEM_INSTRUCTION + schema

    async def _complete(self, prompt: str, operation: str) -> dict[str, Any]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self._build_system_prompt()},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.7,
            )
        except Exception as e:
            logger.error(f"OpenAI API call failed during {operation}: {e}")
            raise GenerationError(f"Failed to {operation}.") from e

        if not response.choices:
            logger.warning(f"OpenAI returned no choices during {operation}")
            raise GenerationError(f"Failed to {operation}.")

        content = response.choices[0].message.content or ""
        if not content.strip():
            logger.warning(f"OpenAI returned empty response during {operation}")
            raise GenerationError(f"Failed to {operation}.")

        payload = extract_json(content)
        if payload is None:
            raise GenerationError(f"Failed to {operation}.")
        return payload

    async def generate_trip(self, request: TripRequest) -> dict[str, Any]:
        """Plan a trip using OpenAI API."""
        prompt = (
            f"Plan a trip starting from {request.departure_location}.\n"
            f"STRICT ROUTE SEQUENCE: {' -> '.join(request.destinations)}.\n"
            f"DATES: from {request.start_date.isoformat()} to {request.end_date.isoformat()}.\n"
            f"Preferred transport: {request.transport_type.value}.\n"
            f"Total budget: {request.total_budget}.\n"
            f"USER GOALS: {request.goals}\n\n"
            f"Ensure the trip ends with a return to {request.departure_location}."
        )
        return await self._complete(prompt, "generate trip plan")

    async def edit_trip(self, trip: Trip, instruction: str) -> dict[str, Any]:
        """Rewrite a trip using OpenAI API."""
        current = trip.model_dump_json(by_alias=True, include=set(TripDraft.model_fields))
        prompt = (
            f'Update this trip: "{instruction}".\n'
            f"Current trip data: {current}\n"
            f"Return the COMPLETE updated trip. "
            f"Ensure the return to {trip.departure_location} is maintained."
        )
        return await self._complete(prompt, "update trip plan")

    async def finalize_from_chat(self, history: list[ChatMessage]) -> dict[str, Any]:
        """Turn a conversation into a trip using OpenAI API."""
        transcript = "\n".join(f"{m.role.upper()}: {m.text}" for m in history if not m.is_system)
        prompt = (
            "Based on the conversation, generate a full JSON itinerary. "
            "Ensure the user returns home at the end.\n\n"
            f"CONVERSATION:\n{transcript}"
        )
        return await self._complete(prompt, "finalize trip from conversation")


def get_llm_client(settings: Settings | None = None) -> TripGenerator:
    """Factory function to get appropriate client based on config.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for trip planning")
        return OpenAIClient(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            timeout=settings.llm_timeout_seconds,
        )

    logger.warning("No OpenAI API key configured, using deterministic stub client")
    return DeterministicStubClient()
