"""In-process implementation of ResultStore."""

from engagement_analytics.entities import CacheEntry


class InMemoryResultStore:
    """Dictionary-backed result store.

    This class satisfies the ResultStore protocol through structural
    typing - no explicit inheritance needed. Entries are never expired
    here; the result cache judges staleness on read and sweeps on demand.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, CacheEntry]] = {}

    @classmethod
    def create(cls) -> "InMemoryResultStore":
        """Factory method mirroring the other stores."""
        return cls()

    def get(self, namespace: str, key: str) -> CacheEntry | None:
        return self._entries.get(namespace, {}).get(key)

    def set(self, namespace: str, key: str, entry: CacheEntry, ttl: int) -> None:
        self._entries.setdefault(namespace, {})[key] = entry

    def delete(self, namespace: str, key: str) -> bool:
        return self._entries.get(namespace, {}).pop(key, None) is not None

    def keys(self, namespace: str) -> list[str]:
        return list(self._entries.get(namespace, {}))

    def clear(self) -> int:
        removed = sum(len(entries) for entries in self._entries.values())
        self._entries.clear()
        return removed

    def count(self) -> dict[str, int]:
        return {namespace: len(entries) for namespace, entries in self._entries.items() if entries}

    def health_check(self) -> bool:
        return True
