"""Business logic services for the GoonGPT API."""

from .auth import AuthGate
from .ratelimit import AnonymousRateLimiter, RateLimiter
from .sessions import SessionStore
from .tokens import TokenLedger
from .users import UserStore

__all__ = [
    "AuthGate",
    "AnonymousRateLimiter",
    "RateLimiter",
    "SessionStore",
    "TokenLedger",
    "UserStore",
]
