"""Key-value storage interface shared by the user, session and rate-limit stores."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

JsonValue = Any


def encode_value(value: JsonValue) -> str:
    """Serialize a value canonically so equal documents compare equal as text."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def decode_value(raw: str | bytes | None) -> JsonValue:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


class KeyValueStore(ABC):
    """JSON document store addressed by string keys within one namespace.

    Implementations raise `StoreUnavailableError` when the backend fails;
    callers decide whether that fails open or closed.
    """

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    @abstractmethod
    def get(self, key: str) -> JsonValue | None:
        """Return the stored document or None."""

    @abstractmethod
    def set(self, key: str, value: JsonValue) -> None:
        """Create or overwrite the document at `key`."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove `key`; deleting a missing key is not an error."""

    @abstractmethod
    def add(self, key: str, value: JsonValue) -> bool:
        """Store `value` only if `key` is absent. Returns True if it was stored."""

    @abstractmethod
    def compare_and_set(self, key: str, expected: JsonValue, value: JsonValue) -> bool:
        """Replace the document at `key` only if it still equals `expected`."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every document in this namespace."""
