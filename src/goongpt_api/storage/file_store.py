"""JSON-file backed store used for local development."""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from threading import RLock

from goongpt_api.core.errors import StoreUnavailableError
from goongpt_api.storage.base import JsonValue, KeyValueStore, encode_value

logger = logging.getLogger(__name__)


class FileKeyValueStore(KeyValueStore):
    """Keeps a namespace in memory and mirrors it to `<directory>/<namespace>.json`.

    Every mutation rewrites the file atomically (temp file + rename). A single
    lock serializes access, so `add` and `compare_and_set` are atomic within
    the process.
    """

    def __init__(self, namespace: str, directory: str | os.PathLike[str]) -> None:
        super().__init__(namespace)
        self._path = Path(directory) / f"{namespace}.json"
        self._lock = RLock()
        self._data: dict[str, JsonValue] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, JsonValue]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as err:
            logger.error("Could not load %s, starting empty: %s", self._path, err)
            return {}
        if not isinstance(data, dict):
            logger.error("Ignoring %s: expected a JSON object", self._path)
            return {}
        return data

    def _flush(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self.namespace}.")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._data, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError as err:
            raise StoreUnavailableError() from err

    def get(self, key: str) -> JsonValue | None:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: JsonValue) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)
            self._flush()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._flush()

    def add(self, key: str, value: JsonValue) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = copy.deepcopy(value)
            self._flush()
            return True

    def compare_and_set(self, key: str, expected: JsonValue, value: JsonValue) -> bool:
        with self._lock:
            current = self._data.get(key)
            if current is None or encode_value(current) != encode_value(expected):
                return False
            self._data[key] = copy.deepcopy(value)
            self._flush()
            return True

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._flush()
