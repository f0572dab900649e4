"""Unit tests for the Redis result store (with mocks)."""

import json
from unittest.mock import MagicMock

import pytest
import redis

from engagement_analytics.entities import CacheEntry
from engagement_analytics.repositories import RedisResultStore


@pytest.fixture
def mock_redis_client():
    """Create mock Redis client."""
    client = MagicMock()
    client.ping.return_value = True
    return client


@pytest.fixture
def store(mock_redis_client):
    return RedisResultStore(redis_client=mock_redis_client, key_prefix="ea")


def test_set_writes_json_with_expiry(store, mock_redis_client):
    store.set("conversation_pairs", "conversationPairs_42", CacheEntry(value={"2-1", "1-3"}, inserted_at=10.0), 3600)

    key, payload = mock_redis_client.set.call_args.args
    assert key == "ea:conversation_pairs:conversationPairs_42"
    assert json.loads(payload) == {"value": ["1-3", "2-1"], "inserted_at": 10.0}
    assert mock_redis_client.set.call_args.kwargs == {"ex": 3600}


def test_get_decodes_entries(store, mock_redis_client):
    mock_redis_client.get.return_value = json.dumps({"value": [1, 2], "inserted_at": 5}).encode()

    assert store.get("matches", "k") == CacheEntry(value=[1, 2], inserted_at=5.0)
    mock_redis_client.get.assert_called_once_with("ea:matches:k")


def test_get_missing_entry(store, mock_redis_client):
    mock_redis_client.get.return_value = None
    assert store.get("matches", "k") is None


def test_unreadable_entry_is_discarded(store, mock_redis_client):
    mock_redis_client.get.return_value = b"not json"

    assert store.get("matches", "k") is None
    mock_redis_client.delete.assert_called_once_with("ea:matches:k")


def test_keys_and_count(store, mock_redis_client):
    mock_redis_client.scan_iter.return_value = [b"ea:matches:a", b"ea:matches:b", b"ea:profiles:profiles_42"]

    assert store.count() == {"matches": 2, "profiles": 1}
    mock_redis_client.scan_iter.return_value = [b"ea:matches:a", b"ea:matches:b"]
    assert store.keys("matches") == ["a", "b"]


def test_clear_deletes_every_prefixed_key(store, mock_redis_client):
    mock_redis_client.scan_iter.return_value = ["ea:matches:a", "ea:drilldown:b"]
    mock_redis_client.delete.return_value = 1

    assert store.clear() == 2
    mock_redis_client.scan_iter.assert_called_with(match="ea:*")


def test_health_check(store, mock_redis_client):
    assert store.health_check() is True
    mock_redis_client.ping.side_effect = redis.ConnectionError("down")
    assert store.health_check() is False
