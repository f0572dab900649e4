"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the moment it was stored.

    Attributes:
        value: The cached payload (match list, id set, pair set, ...)
        inserted_at: Unix timestamp of insertion
    """

    value: Any
    inserted_at: float

    def age(self, now: float) -> float:
        """Seconds elapsed since insertion."""
        return now - self.inserted_at

    def is_valid(self, ttl: float, now: float) -> bool:
        """Check whether the entry is still fresh for the given TTL."""
        return self.age(now) < ttl
