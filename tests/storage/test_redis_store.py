# tests/storage/test_redis_store.py
"""Tests for the redis store against a mocked client."""

import pytest
import redis

from goongpt_api.core.errors import StoreUnavailableError
from goongpt_api.storage.base import encode_value
from goongpt_api.storage.redis_store import RedisKeyValueStore


@pytest.fixture
def redis_client(mocker):
    return mocker.MagicMock()


@pytest.fixture
def store(redis_client) -> RedisKeyValueStore:
    return RedisKeyValueStore("sessions", redis_client)


def test_keys_are_namespaced(store, redis_client) -> None:
    redis_client.get.return_value = b'{"user_id":"u1"}'

    assert store.get("tok") == {"user_id": "u1"}
    redis_client.get.assert_called_once_with("sessions:tok")


def test_get_missing(store, redis_client) -> None:
    redis_client.get.return_value = None
    assert store.get("tok") is None


def test_add_uses_set_nx(store, redis_client) -> None:
    redis_client.set.return_value = None
    assert store.add("tok", {"a": 1}) is False
    redis_client.set.assert_called_once_with("sessions:tok", encode_value({"a": 1}), nx=True)

    redis_client.set.return_value = True
    assert store.add("tok", {"a": 1}) is True


def test_compare_and_set_commits_when_unchanged(store, redis_client) -> None:
    pipe = redis_client.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = encode_value({"count": 1}).encode()

    assert store.compare_and_set("k", {"count": 1}, {"count": 2}) is True
    pipe.watch.assert_called_once_with("sessions:k")
    pipe.multi.assert_called_once()
    pipe.set.assert_called_once_with("sessions:k", encode_value({"count": 2}))
    pipe.execute.assert_called_once()


def test_compare_and_set_rejects_changed_value(store, redis_client) -> None:
    pipe = redis_client.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = encode_value({"count": 5}).encode()

    assert store.compare_and_set("k", {"count": 1}, {"count": 2}) is False
    pipe.execute.assert_not_called()


def test_compare_and_set_loses_race(store, redis_client) -> None:
    pipe = redis_client.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = encode_value({"count": 1}).encode()
    pipe.execute.side_effect = redis.WatchError()

    assert store.compare_and_set("k", {"count": 1}, {"count": 2}) is False


def test_clear_deletes_namespace_keys(store, redis_client) -> None:
    redis_client.scan_iter.return_value = iter([b"sessions:a", b"sessions:b"])

    store.clear()

    redis_client.scan_iter.assert_called_once_with(match="sessions:*")
    redis_client.delete.assert_called_once_with(b"sessions:a", b"sessions:b")


def test_connection_errors_become_store_unavailable(store, redis_client) -> None:
    redis_client.get.side_effect = redis.ConnectionError("down")

    with pytest.raises(StoreUnavailableError):
        store.get("tok")
