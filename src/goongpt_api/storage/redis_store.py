"""Redis backed store for hosted deployments."""

from __future__ import annotations

import logging
from typing import Any

import redis

from goongpt_api.core.errors import StoreUnavailableError
from goongpt_api.storage.base import JsonValue, KeyValueStore, decode_value, encode_value

logger = logging.getLogger(__name__)


class RedisKeyValueStore(KeyValueStore):
    """Stores each document as a string under `<namespace>:<key>`.

    `add` maps to `SET NX`; `compare_and_set` uses an optimistic
    WATCH/MULTI transaction.
    """

    def __init__(self, namespace: str, client: Any) -> None:
        super().__init__(namespace)
        self._redis = client

    @classmethod
    def from_url(cls, namespace: str, url: str) -> RedisKeyValueStore:
        return cls(namespace, redis.from_url(url))

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> JsonValue | None:
        try:
            raw = self._redis.get(self._key(key))
        except redis.RedisError as err:
            logger.error("redis get failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err
        return decode_value(raw)

    def set(self, key: str, value: JsonValue) -> None:
        try:
            self._redis.set(self._key(key), encode_value(value))
        except redis.RedisError as err:
            logger.error("redis set failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._key(key))
        except redis.RedisError as err:
            logger.error("redis delete failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def add(self, key: str, value: JsonValue) -> bool:
        try:
            return bool(self._redis.set(self._key(key), encode_value(value), nx=True))
        except redis.RedisError as err:
            logger.error("redis add failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def compare_and_set(self, key: str, expected: JsonValue, value: JsonValue) -> bool:
        full_key = self._key(key)
        try:
            with self._redis.pipeline() as pipe:
                try:
                    pipe.watch(full_key)
                    current = pipe.get(full_key)
                    if current is None or encode_value(decode_value(current)) != encode_value(expected):
                        pipe.unwatch()
                        return False
                    pipe.multi()
                    pipe.set(full_key, encode_value(value))
                    pipe.execute()
                    return True
                except redis.WatchError:
                    return False
        except redis.RedisError as err:
            logger.error("redis compare_and_set failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def clear(self) -> None:
        try:
            keys = list(self._redis.scan_iter(match=f"{self.namespace}:*"))
            if keys:
                self._redis.delete(*keys)
        except redis.RedisError as err:
            logger.error("redis clear failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err
