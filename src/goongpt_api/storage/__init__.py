"""Storage backends and the factory that picks one per deployment."""

from __future__ import annotations

import logging

from goongpt_api.core.settings import Settings, settings as default_settings
from goongpt_api.storage.base import KeyValueStore
from goongpt_api.storage.file_store import FileKeyValueStore

logger = logging.getLogger(__name__)

USERS_NAMESPACE = "users"
SESSIONS_NAMESPACE = "sessions"
RATE_LIMIT_NAMESPACE = "ratelimit"

__all__ = [
    "KeyValueStore",
    "FileKeyValueStore",
    "USERS_NAMESPACE",
    "SESSIONS_NAMESPACE",
    "RATE_LIMIT_NAMESPACE",
    "open_store",
]


def open_store(namespace: str, config: Settings | None = None) -> KeyValueStore:
    """Return the store for `namespace` on the backend selected by settings."""
    config = config or default_settings
    backend = config.effective_storage_backend
    logger.debug("Opening %s store on %s backend", namespace, backend)

    if backend == "file":
        return FileKeyValueStore(namespace, config.dev_storage_dir)
    if backend == "redis":
        from goongpt_api.storage.redis_store import RedisKeyValueStore

        return RedisKeyValueStore.from_url(namespace, config.redis_url)

    from goongpt_api.db.session import SessionLocal
    from goongpt_api.storage.sql_store import SqlKeyValueStore

    return SqlKeyValueStore(namespace, SessionLocal)
