"""TTL result cache for analytics data.

Each namespace has its own TTL. Staleness is judged when an entry is
read; expired entries are simply treated as absent until they are
overwritten or swept.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from engagement_analytics.config import settings
from engagement_analytics.entities import CacheEntry
from engagement_analytics.protocols import ResultStore

logger = logging.getLogger(__name__)

MATCHES = "matches"
PROFILES = "profiles"
MEMBERS = "members"
CONVERSATION_IDS = "conversation_ids"
CONVERSATION_PAIRS = "conversation_pairs"
DRILLDOWN = "drilldown"
EVENTS = "events"
GROUPS = "groups"


def default_ttls() -> dict[str, int]:
    """Namespace TTLs (seconds) taken from settings."""
    return {
        MATCHES: settings.cache_ttl_short,
        PROFILES: settings.cache_ttl_short,
        MEMBERS: settings.cache_ttl_short,
        CONVERSATION_IDS: settings.cache_ttl_long,
        CONVERSATION_PAIRS: settings.cache_ttl_long,
        DRILLDOWN: settings.cache_ttl_drilldown,
        EVENTS: settings.cache_ttl_short,
        GROUPS: settings.cache_ttl_short,
    }


class ResultCache:
    """Namespaced cache of fetched and derived analytics data.

    Owned by whoever builds the analytics service; there is no module
    level cache state.

    Example:
        ```python
        cache = ResultCache.create(store=InMemoryResultStore())
        cache.put("matches", "matches_42_all_all_all", rows)
        rows = cache.get("matches", "matches_42_all_all_all")  # None once stale
        ```
    """

    def __init__(
        self,
        store: ResultStore,
        ttls: dict[str, int] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Storage backend (required).
            ttls: TTL in seconds per namespace. Defaults to settings.
            clock: Source of the current Unix time.
        """
        self._store = store
        self._ttls = {**default_ttls(), **(ttls or {})}
        self._clock = clock
        self._hits = 0
        self._misses = 0

    @classmethod
    def create(
        cls,
        store: ResultStore,
        ttls: dict[str, int] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "ResultCache":
        """Factory method to create ResultCache with settings-driven TTLs."""
        return cls(store=store, ttls=ttls, clock=clock)

    def ttl_for(self, namespace: str) -> int:
        try:
            return self._ttls[namespace]
        except KeyError:
            raise ValueError(f"Unknown cache namespace: {namespace}") from None

    def is_valid(self, entry: CacheEntry, ttl: float) -> bool:
        """Check whether an entry is younger than ``ttl`` seconds."""
        return entry.is_valid(ttl, self._clock())

    def get(self, namespace: str, key: str) -> Any | None:
        """Return the cached value, or None if absent or stale.

        Has no side effects on the stored entry.
        """
        entry = self._store.get(namespace, key)
        if entry is None or not self.is_valid(entry, self.ttl_for(namespace)):
            self._misses += 1
            return None
        self._hits += 1
        logger.debug("Cache hit %s/%s", namespace, key)
        return entry.value

    def put(self, namespace: str, key: str, value: Any) -> None:
        """Store a value, replacing any previous entry for the key."""
        ttl = self.ttl_for(namespace)
        self._store.set(namespace, key, CacheEntry(value=value, inserted_at=self._clock()), ttl)

    def invalidate(self, namespace: str, key: str) -> bool:
        return self._store.delete(namespace, key)

    def sweep_expired(self) -> int:
        """Delete every stale entry.

        Returns:
            Number of entries discarded
        """
        removed = 0
        for namespace, ttl in self._ttls.items():
            for key in self._store.keys(namespace):
                entry = self._store.get(namespace, key)
                if entry is not None and not self.is_valid(entry, ttl):
                    if self._store.delete(namespace, key):
                        removed += 1
        if removed:
            logger.info("Swept %d expired cache entries", removed)
        return removed

    def clear(self) -> int:
        """Drop every entry in every namespace."""
        removed = self._store.clear()
        logger.info("Cleared %d cache entries", removed)
        return removed

    def stats(self) -> dict[str, Any]:
        """Entry counts, TTLs and hit/miss counters."""
        return {
            "backend": type(self._store).__name__,
            "healthy": self._store.health_check(),
            "entries": self._store.count(),
            "ttls": dict(self._ttls),
            "hits": self._hits,
            "misses": self._misses,
        }
