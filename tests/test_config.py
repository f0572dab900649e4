"""
Tests for settings validation and protocol conformance.
"""

import pytest

from engagement_analytics.config import Settings
from engagement_analytics.protocols import DocumentStore, RestTransport, ResultStore, UserDirectory
from engagement_analytics.repositories import (
    HttpxRestTransport,
    InMemoryResultStore,
    RestUserDirectory,
    SnapshotDocumentStore,
)

from .conftest import FakeDocumentStore, FakeTransport, FakeUserDirectory


def test_defaults_are_valid():
    settings = Settings()
    assert settings.cache_ttl_short > 0
    assert settings.anomaly_pair_threshold >= 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"cache_backend": "disk"},
        {"cache_ttl_long": 0},
        {"document_batch_size": 0},
        {"user_batch_size": 51},
        {"anomaly_pair_threshold": 0},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValueError):
        Settings(**overrides)


def test_redis_backend_flag():
    assert Settings(cache_backend="REDIS").uses_redis
    assert not Settings(cache_backend="memory").uses_redis


def test_implementations_satisfy_protocols():
    transport = HttpxRestTransport(base_url="http://backend.test", token="")

    assert isinstance(transport, RestTransport)
    assert isinstance(FakeTransport(), RestTransport)
    assert isinstance(SnapshotDocumentStore(), DocumentStore)
    assert isinstance(FakeDocumentStore(), DocumentStore)
    assert isinstance(RestUserDirectory(transport), UserDirectory)
    assert isinstance(FakeUserDirectory(), UserDirectory)
    assert isinstance(InMemoryResultStore(), ResultStore)
