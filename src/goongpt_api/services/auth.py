"""Wallet-signature login, registration and session validation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from goongpt_api.core.errors import AuthenticationError, GateError, ValidationError
from goongpt_api.core.security import verify_wallet_signature
from goongpt_api.schemas.auth import AuthResponse
from goongpt_api.schemas.session import SessionRecord
from goongpt_api.schemas.user import User
from goongpt_api.services.sessions import SessionStore
from goongpt_api.services.users import (
    UserStore,
    validate_email,
    validate_username,
    validate_wallet_address,
)

logger = logging.getLogger(__name__)

SignatureVerifier = Callable[[str, str, str], bool]

_PROFILE_FIELDS = ("username", "email", "profile_picture")


@dataclass(frozen=True)
class AuthenticatedSession:
    """A validated session together with the user it belongs to."""

    session: SessionRecord
    user: User


class AuthGate:
    """Orchestrates signature checks, user lookup and session minting."""

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        verifier: SignatureVerifier = verify_wallet_signature,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self._verify = verifier

    def authenticate(self, wallet_address: str, signed_message: str, message: str) -> AuthResponse:
        """Log in with a wallet signature over `message`.

        Unknown wallets are reported as needing registration and get no session.

        Raises:
            ValidationError: If a field is missing.
            AuthenticationError: If the signature does not verify.
        """
        if not wallet_address or not signed_message or not message:
            raise ValidationError("Missing required fields")

        if not self._verify(wallet_address, signed_message, message):
            logger.info("Signature verification failed for wallet %s", wallet_address)
            raise AuthenticationError("Invalid signature")

        wallet_address = validate_wallet_address(wallet_address)
        user = self.users.get_by_wallet(wallet_address)
        if user is None:
            return AuthResponse(
                authenticated=True,
                needs_registration=True,
                wallet_address=wallet_address,
            )

        session = self.mint_session(user)
        return AuthResponse(
            authenticated=True,
            user=user,
            token=session.token,
            expires_at=session.expires_at,
        )

    def mint_session(self, user: User) -> SessionRecord:
        return self.sessions.create_session(user.id)

    def register(
        self,
        wallet_address: str,
        username: str,
        email: str | None = None,
        profile_picture: str | None = None,
    ) -> tuple[User, SessionRecord]:
        """Create a user and open its first session.

        Raises:
            ValidationError: On malformed wallet, username or email.
            ConflictError: If the wallet or username is taken.
        """
        if not wallet_address or not username:
            raise ValidationError("Wallet address and username are required")
        wallet_address = validate_wallet_address(wallet_address)
        validate_username(username)
        email = validate_email(email)

        user = self.users.create_user(
            wallet_address=wallet_address,
            username=username,
            email=email,
            profile_picture=profile_picture or None,
        )
        return user, self.mint_session(user)

    def validate_session(self, token: str | None) -> SessionRecord | None:
        """Return the live session for `token`, or None."""
        if not token:
            return None
        return self.sessions.get_session(token)

    def resolve(self, token: str | None) -> AuthenticatedSession | None:
        """Return the session and its user, or None if either is missing."""
        session = self.validate_session(token)
        if session is None:
            return None
        user = self.users.get_by_id(session.user_id)
        if user is None:
            logger.warning("Session %s points at missing user %s", session.id, session.user_id)
            return None
        return AuthenticatedSession(session=session, user=user)

    def require(self, token: str | None) -> AuthenticatedSession:
        """Like `resolve`, but raise AuthenticationError instead of returning None."""
        if not token:
            raise AuthenticationError("Missing authentication token")
        resolved = self.resolve(token)
        if resolved is None:
            raise AuthenticationError("Invalid or expired session")
        return resolved

    def session_status(self, token: str | None) -> AuthenticatedSession | None:
        """Resolve a session for status checks; internal errors read as logged out."""
        try:
            return self.resolve(token)
        except (GateError, PydanticValidationError) as err:
            logger.error("Session validation failed: %s", err, exc_info=True)
            return None

    def wallet_for_token(self, token: str | None) -> str | None:
        resolved = self.resolve(token)
        return resolved.user.wallet_address if resolved else None

    def logout(self, token: str | None) -> None:
        """Delete the session; never fails from the caller's point of view."""
        if not token:
            return
        try:
            self.sessions.delete_session(token)
        except GateError as err:
            logger.error("Error deleting session during logout: %s", err, exc_info=True)

    def update_profile(self, user_id: str, changes: dict[str, str | None]) -> User:
        """Apply a partial profile update.

        Raises:
            ValidationError: On malformed fields or an empty update.
            ConflictError: If the username belongs to another user.
        """
        updates: dict[str, str | None] = {}
        if "username" in changes:
            updates["username"] = validate_username(changes["username"])
        if "email" in changes:
            updates["email"] = validate_email(changes["email"])
        if "profile_picture" in changes:
            updates["profile_picture"] = changes["profile_picture"] or None

        if not updates:
            raise ValidationError("No fields to update")
        return self.users.update_user(user_id, updates)

    def reset(self) -> None:
        """Drop every user and session (development only)."""
        self.users.clear()
        self.sessions.clear()
