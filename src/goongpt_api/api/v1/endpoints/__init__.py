"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .profile import router as profile_router
from .system import router as system_router
from .tokens import router as tokens_router

__all__ = [
    "auth_router",
    "profile_router",
    "system_router",
    "tokens_router",
]
