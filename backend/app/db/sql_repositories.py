"""SQL implementations of repository interfaces."""

from sqlalchemy.orm import Session, sessionmaker

from backend.app.db.models import KeyValueSnapshot


class SqlKeyValueStore:
    """SQL implementation of KeyValueStore.

    Each save runs in its own transaction, so readers see either the old or
    the new snapshot.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load(self, key: str) -> str | None:
        """Load a snapshot."""
        with self._session_factory() as session:
            row = session.get(KeyValueSnapshot, key)
            return row.value if row is not None else None

    def save(self, key: str, value: str) -> None:
        """Replace a snapshot."""
        with self._session_factory() as session, session.begin():
            row = session.get(KeyValueSnapshot, key)
            if row is None:
                session.add(KeyValueSnapshot(key=key, value=value))
            else:
                row.value = value
