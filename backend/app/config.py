"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (unset -> in-memory snapshots)
    database_url: str | None = None

    # Generative capability
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 60.0

    # Monetization (cents)
    trip_generation_price_cents: int = 299
    trip_edit_price_cents: int = 99
    free_edit_allowance: int = 2
    currency: str = "USD"

    # Simulated payment processor latency (milliseconds)
    payment_simulated_delay_ms: int = 1500

    # Requests awaiting payment are cancelled after this long (seconds)
    payment_window_seconds: int = 900

    # Booking links
    booking_url_min_length: int = 15
    booking_url_blocked_fragment: str = "google.com/search"

    # Itinerary policy
    enforce_round_trip: bool = True
    default_cover_image_url: str = (
        "https://images.unsplash.com/photo-1469854523086-cc02fe5d8800"
        "?auto=format&fit=crop&w=1200&q=80"
    )

    # Persistence keys
    trips_store_key: str = "voyager_trips"
    free_trial_store_key: str = "voyager_free_trial_used"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
