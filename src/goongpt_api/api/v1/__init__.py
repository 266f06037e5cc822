"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    profile_router,
    system_router,
    tokens_router,
)

__all__ = [
    "auth_router",
    "profile_router",
    "system_router",
    "tokens_router",
]
