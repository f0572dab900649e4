"""Redis implementation of ResultStore.

Entries are stored as JSON strings under ``{prefix}:{namespace}:{key}``
with a Redis expiry equal to the namespace TTL, so Redis reclaims memory
on its own. Freshness is still decided by the result cache at read time.
"""

import json
import logging
from typing import Any

import redis

from engagement_analytics.config import get_redis_client, settings
from engagement_analytics.entities import CacheEntry

logger = logging.getLogger(__name__)


def _encode_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class RedisResultStore:
    """Redis-backed result store shared between worker processes.

    This class satisfies the ResultStore protocol through structural
    typing - no explicit inheritance needed.

    Values must be JSON-compatible; sets are written as sorted lists and
    come back as lists.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> None:
        """Initialize the Redis result store.

        Args:
            redis_client: Redis client instance. If None, creates default.
            key_prefix: Prefix for every key. Defaults to settings.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = key_prefix or settings.cache_key_prefix

    @classmethod
    def create(cls, key_prefix: str | None = None) -> "RedisResultStore":
        """Factory method to create RedisResultStore with defaults.

        Args:
            key_prefix: Key prefix. If None, uses settings.

        Returns:
            Configured RedisResultStore
        """
        return cls(key_prefix=key_prefix)

    def _key(self, namespace: str, key: str) -> str:
        return f"{self._prefix}:{namespace}:{key}"

    def get(self, namespace: str, key: str) -> CacheEntry | None:
        raw = self._client.get(self._key(namespace, key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            payload = json.loads(raw)
            return CacheEntry(value=payload["value"], inserted_at=float(payload["inserted_at"]))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.warning("Discarding unreadable cache entry %s", self._key(namespace, key))
            self._client.delete(self._key(namespace, key))
            return None

    def set(self, namespace: str, key: str, entry: CacheEntry, ttl: int) -> None:
        payload = json.dumps(
            {"value": entry.value, "inserted_at": entry.inserted_at},
            default=_encode_default,
        )
        self._client.set(self._key(namespace, key), payload, ex=ttl)

    def delete(self, namespace: str, key: str) -> bool:
        result: int = self._client.delete(self._key(namespace, key))  # type: ignore[assignment]
        return result > 0

    def keys(self, namespace: str) -> list[str]:
        prefix = f"{self._prefix}:{namespace}:"
        keys = []
        for full_key in self._client.scan_iter(match=f"{prefix}*"):
            if isinstance(full_key, bytes):
                full_key = full_key.decode()
            keys.append(full_key[len(prefix) :])
        return keys

    def clear(self) -> int:
        removed = 0
        for full_key in self._client.scan_iter(match=f"{self._prefix}:*"):
            removed += self._client.delete(full_key)
        return removed

    def count(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for full_key in self._client.scan_iter(match=f"{self._prefix}:*"):
            if isinstance(full_key, bytes):
                full_key = full_key.decode()
            namespace = full_key[len(self._prefix) + 1 :].split(":", 1)[0]
            counts[namespace] = counts.get(namespace, 0) + 1
        return counts

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
