"""Domain errors shared by the auth, storage and rate-limiting layers.

Every error carries the HTTP status it maps to and a message that is safe to
show to clients. Internal detail stays in the logs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from goongpt_api.services.ratelimit import RateLimitRejection


class GateError(Exception):
    """Base class for errors that are rendered as JSON error responses."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}

    def headers(self) -> dict[str, str] | None:
        return None


class AuthenticationError(GateError):
    """Bad or missing signature, or an absent/expired session."""

    status_code = 401
    default_message = "Authentication failed"

    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class ValidationError(GateError):
    """Malformed user input; `details` itemizes the failing fields."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.details:
            payload["details"] = self.details
        return payload


class ConflictError(GateError):
    """A wallet address or username is already taken."""

    status_code = 409
    default_message = "Resource already exists"


class NotFoundError(GateError):
    status_code = 404
    default_message = "Not found"


class PermissionDeniedError(GateError):
    status_code = 403
    default_message = "Forbidden"


class DailyLimitReached(GateError):
    """The user has earned the maximum number of tokens for today."""

    status_code = 429
    default_message = "Daily token earning limit reached"


class RateLimitExceeded(GateError):
    """Raised at the HTTP boundary when the limiter rejects a request."""

    status_code = 429

    def __init__(self, rejection: RateLimitRejection) -> None:
        super().__init__(rejection.message)
        self.rejection = rejection

    def to_payload(self) -> dict[str, Any]:
        return self.rejection.body()

    def headers(self) -> dict[str, str] | None:
        return self.rejection.headers()


class StoreUnavailableError(GateError):
    """The backing key-value store failed to complete an operation."""

    status_code = 500
    default_message = "Storage temporarily unavailable"
