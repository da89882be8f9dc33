"""Dependency wiring for the API."""

import logging
from functools import lru_cache

from backend.app.config import Settings, get_settings
from backend.app.db.engine import create_engine_from_settings, create_session_factory, ensure_schema
from backend.app.db.inmemory import InMemoryKeyValueStore
from backend.app.db.repositories import KeyValueStore
from backend.app.db.snapshots import FreeTrialFlagStore, TripStore
from backend.app.db.sql_repositories import SqlKeyValueStore
from backend.app.llm.client import get_llm_client
from backend.app.models.monetization import MonetizationState
from backend.app.monetization.gate import MonetizationGate, SimulatedPaymentProvider
from backend.app.orchestration.planner import TripPlanner

logger = logging.getLogger(__name__)


def create_kv_store(settings: Settings) -> KeyValueStore:
    """SQL-backed store when a database is configured, in-memory otherwise."""
    if not settings.database_url:
        logger.warning("DATABASE_URL not set, trips are kept in memory only")
        return InMemoryKeyValueStore()

    engine = create_engine_from_settings(settings)
    ensure_schema(engine)
    return SqlKeyValueStore(create_session_factory(engine))


def build_planner(settings: Settings, kv: KeyValueStore | None = None) -> TripPlanner:
    """Assemble a planner; both snapshots are loaded once here."""
    kv = kv if kv is not None else create_kv_store(settings)
    flag_store = FreeTrialFlagStore(kv, key=settings.free_trial_store_key)
    state = MonetizationState(free_trial_used=flag_store.load_free_trial_used())

    return TripPlanner(
        store=TripStore(kv, key=settings.trips_store_key),
        gate=MonetizationGate.from_settings(settings, state, flag_store=flag_store),
        generator=get_llm_client(settings),
        payments=SimulatedPaymentProvider(delay_ms=settings.payment_simulated_delay_ms),
        settings=settings,
    )


@lru_cache
def get_planner() -> TripPlanner:
    """Process-wide planner (single writer)."""
    return build_planner(get_settings())
