"""In-memory implementations of repository interfaces."""


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStore."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self.save_count = 0

    def load(self, key: str) -> str | None:
        """Load a snapshot."""
        return self._values.get(key)

    def save(self, key: str, value: str) -> None:
        """Replace a snapshot."""
        self._values[key] = value
        self.save_count += 1
