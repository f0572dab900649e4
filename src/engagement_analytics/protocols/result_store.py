"""Result store protocol.

Defines the storage behind the analytics result cache. The store only
keeps entries; deciding whether an entry is still fresh is the cache's
job, done at read time.

Implementations can include:
- In-process dictionary (default)
- Redis (shared between workers)
"""

from typing import Protocol, runtime_checkable

from engagement_analytics.entities import CacheEntry


@runtime_checkable
class ResultStore(Protocol):
    """Protocol for result cache storage backends.

    Example:
        ```python
        from engagement_analytics.protocols import ResultStore

        store: ResultStore = InMemoryResultStore()
        store: ResultStore = RedisResultStore.create()
        ```
    """

    def get(self, namespace: str, key: str) -> CacheEntry | None:
        """Fetch an entry.

        Args:
            namespace: Cache namespace (matches, profiles, ...)
            key: Key within the namespace

        Returns:
            The stored entry, or None if absent
        """
        ...

    def set(self, namespace: str, key: str, entry: CacheEntry, ttl: int) -> None:
        """Store an entry, replacing any previous one.

        Args:
            namespace: Cache namespace
            key: Key within the namespace
            entry: The entry to store
            ttl: Namespace TTL in seconds, usable for physical reclamation
        """
        ...

    def delete(self, namespace: str, key: str) -> bool:
        """Delete an entry.

        Returns:
            True if an entry was removed
        """
        ...

    def keys(self, namespace: str) -> list[str]:
        """List the keys stored under a namespace."""
        ...

    def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed
        """
        ...

    def count(self) -> dict[str, int]:
        """Count entries per namespace."""
        ...

    def health_check(self) -> bool:
        """Check if the store is reachable."""
        ...
