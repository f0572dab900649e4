import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Community REST backend
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:3000")
    api_token: str | None = os.getenv("API_TOKEN")
    api_timeout: float = float(os.getenv("API_TIMEOUT", "30.0"))

    # Result cache
    cache_backend: str = os.getenv("CACHE_BACKEND", "memory")  # "memory" or "redis"
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "engagement_analytics")
    cache_ttl_short: int = int(os.getenv("CACHE_TTL_SHORT", "300"))  # 5 minutes, REST data
    cache_ttl_long: int = int(os.getenv("CACHE_TTL_LONG", "600"))  # 10 minutes, document store
    cache_ttl_drilldown: int = int(os.getenv("CACHE_TTL_DRILLDOWN", "120"))

    # Redis (only used when cache_backend == "redis")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Batching
    document_batch_size: int = int(os.getenv("DOCUMENT_BATCH_SIZE", "10"))
    user_batch_size: int = int(os.getenv("USER_BATCH_SIZE", "20"))

    # Metric policies
    anomaly_pair_threshold: int = int(os.getenv("ANOMALY_PAIR_THRESHOLD", "1000"))
    override_suspicious_zero: bool = os.getenv("OVERRIDE_SUSPICIOUS_ZERO", "true").lower() == "true"

    # Document store snapshot (JSON export of the messages collection)
    snapshot_path: str | None = os.getenv("SNAPSHOT_PATH")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    @property
    def uses_redis(self) -> bool:
        """Check if the result cache should be backed by Redis."""
        return self.cache_backend.lower() == "redis"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_backend.lower() not in ("memory", "redis"):
            raise ValueError(f"CACHE_BACKEND must be 'memory' or 'redis', got {self.cache_backend}")

        for name in ("cache_ttl_short", "cache_ttl_long", "cache_ttl_drilldown"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be positive")

        for name in ("document_batch_size", "user_batch_size"):
            if not 1 <= getattr(self, name) <= 50:
                raise ValueError(f"{name.upper()} must be between 1 and 50")

        if self.anomaly_pair_threshold < 1:
            raise ValueError("ANOMALY_PAIR_THRESHOLD must be at least 1")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
