"""User persistence with unique wallet and username indexes."""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Callable
from typing import Any

from goongpt_api.core.errors import ConflictError, NotFoundError, StoreUnavailableError, ValidationError
from goongpt_api.core.security import canonical_wallet_address, is_valid_wallet_address
from goongpt_api.db.time import from_timestamp
from goongpt_api.schemas.user import User
from goongpt_api.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]{3,20}")
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

USERNAME_RULES = "Username must be 3-20 characters and contain only letters, numbers, and underscores"

# Attempts at an optimistic update before giving up with StoreUnavailableError.
_MAX_UPDATE_ATTEMPTS = 5

Clock = Callable[[], float]


def validate_username(username: str | None) -> str:
    if not isinstance(username, str) or not USERNAME_PATTERN.fullmatch(username):
        raise ValidationError(USERNAME_RULES, details=[f"username: {USERNAME_RULES}"])
    return username


def validate_email(email: str | None) -> str | None:
    """Return the email (None when blank) or raise ValidationError."""
    if not email:
        return None
    if not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("Invalid email format", details=["email: Invalid email format"])
    return email


def validate_wallet_address(wallet_address: str | None) -> str:
    """Return the canonical address or raise ValidationError.

    Index keys are built from the canonical form, so a padded copy of a
    registered address resolves to the same user.
    """
    if not isinstance(wallet_address, str) or not is_valid_wallet_address(wallet_address):
        raise ValidationError(
            "Invalid wallet address",
            details=["wallet_address: must be a base58 encoded 32-byte public key"],
        )
    return canonical_wallet_address(wallet_address)


def _wallet_key(wallet_address: str) -> str:
    return f"wallet:{wallet_address}"


def _username_key(username: str) -> str:
    return f"username:{username}"


def _id_key(user_id: str) -> str:
    return f"id:{user_id}"


class UserStore:
    """Users keyed by id, with `wallet:` and `username:` index entries.

    Index entries are claimed with an insert-if-absent operation, so two
    concurrent registrations of the same wallet or username cannot both win.
    A claim whose user record never got written (a crash mid-registration) is
    treated as free and can be taken over.
    """

    def __init__(self, store: KeyValueStore, clock: Clock = time.time) -> None:
        self._store = store
        self._clock = clock

    def _now(self):
        return from_timestamp(self._clock())

    # --- Lookups -------------------------------------------------------------------
    def get_by_id(self, user_id: str) -> User | None:
        data = self._store.get(_id_key(user_id))
        return User.model_validate(data) if data else None

    def _get_by_index(self, key: str) -> User | None:
        claim = self._store.get(key)
        if not claim:
            return None
        return self.get_by_id(claim["user_id"])

    def get_by_wallet(self, wallet_address: str) -> User | None:
        return self._get_by_index(_wallet_key(wallet_address))

    def get_by_username(self, username: str) -> User | None:
        return self._get_by_index(_username_key(username))

    # --- Index claims --------------------------------------------------------------
    def _claim(self, key: str, user_id: str) -> bool:
        """Atomically point index `key` at `user_id`. Returns False if taken."""
        claim = {"user_id": user_id}
        if self._store.add(key, claim):
            return True
        existing = self._store.get(key)
        if existing is None:
            return self._store.add(key, claim)
        if existing.get("user_id") == user_id:
            return True
        if self._store.get(_id_key(existing["user_id"])) is None:
            logger.warning("Reclaiming orphaned index entry %s", key)
            return self._store.compare_and_set(key, existing, claim)
        return False

    def _release(self, key: str, user_id: str) -> None:
        existing = self._store.get(key)
        if existing and existing.get("user_id") == user_id:
            self._store.delete(key)

    # --- Mutations -----------------------------------------------------------------
    def create_user(
        self,
        wallet_address: str,
        username: str,
        email: str | None = None,
        profile_picture: str | None = None,
    ) -> User:
        """Create a user, enforcing one user per wallet and per username.

        Raises:
            ConflictError: If the username or the wallet is already registered.
        """
        now = self._now()
        user = User(
            id=str(uuid.uuid4()),
            wallet_address=wallet_address,
            username=username,
            email=email,
            profile_picture=profile_picture,
            created_at=now,
            updated_at=now,
        )

        if not self._claim(_username_key(username), user.id):
            raise ConflictError("Username already taken")
        if not self._claim(_wallet_key(wallet_address), user.id):
            self._release(_username_key(username), user.id)
            raise ConflictError("Wallet already registered")

        try:
            self._store.set(_id_key(user.id), user.model_dump(mode="json"))
        except StoreUnavailableError:
            self._release(_wallet_key(wallet_address), user.id)
            self._release(_username_key(username), user.id)
            raise

        logger.info("Registered user %s for wallet %s", user.id, wallet_address)
        return user

    def mutate(self, user_id: str, apply: Callable[[User], dict[str, Any]]) -> User:
        """Apply `apply(current_user)`'s field updates with optimistic concurrency.

        `apply` may be invoked more than once if another writer races us.

        Raises:
            NotFoundError: If the user does not exist.
            StoreUnavailableError: If the update keeps losing races.
        """
        key = _id_key(user_id)
        for _ in range(_MAX_UPDATE_ATTEMPTS):
            current = self._store.get(key)
            if current is None:
                raise NotFoundError("User not found")
            user = User.model_validate(current)
            updates = apply(user)
            updated = user.model_copy(update={**updates, "updated_at": self._now()})
            if self._store.compare_and_set(key, current, updated.model_dump(mode="json")):
                return updated
        logger.error("Gave up updating user %s after %d attempts", user_id, _MAX_UPDATE_ATTEMPTS)
        raise StoreUnavailableError()

    def update_user(self, user_id: str, updates: dict[str, Any]) -> User:
        """Update profile fields, moving the username index when it changes.

        Raises:
            NotFoundError: If the user does not exist.
            ConflictError: If the new username belongs to another user.
        """
        current = self.get_by_id(user_id)
        if current is None:
            raise NotFoundError("User not found")

        new_username = updates.get("username")
        renaming = new_username is not None and new_username != current.username
        if renaming and not self._claim(_username_key(new_username), user_id):
            raise ConflictError("Username already taken")

        try:
            updated = self.mutate(user_id, lambda _user: dict(updates))
        except Exception:
            if renaming:
                self._release(_username_key(new_username), user_id)
            raise

        if renaming:
            self._release(_username_key(current.username), user_id)
        return updated

    def clear(self) -> None:
        self._store.clear()
