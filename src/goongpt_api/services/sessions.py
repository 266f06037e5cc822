"""Opaque session tokens with a fixed lifetime and lazy expiry."""

from __future__ import annotations

import logging
import secrets
import time
import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import Final

from pydantic import ValidationError

from goongpt_api.db.time import from_timestamp
from goongpt_api.schemas.session import SessionRecord
from goongpt_api.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_TTL: Final[timedelta] = timedelta(days=7)
TOKEN_BYTES: Final[int] = 32


def generate_session_token() -> str:
    """Return 32 random bytes, hex encoded."""
    return secrets.token_hex(TOKEN_BYTES)


class SessionStore:
    """Sessions keyed by their token.

    A session is valid while it exists and `expires_at` is in the future;
    expired sessions are deleted when they are next read.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock

    def create_session(self, user_id: str) -> SessionRecord:
        now = from_timestamp(self._clock())
        session = SessionRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token=generate_session_token(),
            expires_at=now + SESSION_TTL,
            created_at=now,
        )
        self._store.set(session.token, session.model_dump(mode="json"))
        logger.debug("Created session %s for user %s", session.id, user_id)
        return session

    def get_session(self, token: str) -> SessionRecord | None:
        if not token:
            return None
        data = self._store.get(token)
        if not data:
            return None
        try:
            session = SessionRecord.model_validate(data)
        except ValidationError:
            logger.warning("Discarding undecodable session record", exc_info=True)
            self._store.delete(token)
            return None
        if session.expires_at <= from_timestamp(self._clock()):
            logger.debug("Session %s expired, deleting", session.id)
            self._store.delete(token)
            return None
        return session

    def delete_session(self, token: str) -> None:
        if token:
            self._store.delete(token)

    def clear(self) -> None:
        self._store.clear()
