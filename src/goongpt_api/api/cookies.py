"""Session cookie issuing and clearing."""

from __future__ import annotations

from fastapi import Response

from goongpt_api.core.request import SESSION_COOKIE_MAX_AGE, SESSION_COOKIE_NAME, RequestContext
from goongpt_api.core.settings import settings


def _secure(ctx: RequestContext) -> bool:
    return settings.cookie_secure or ctx.is_https


def set_session_cookie(response: Response, token: str, ctx: RequestContext) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_COOKIE_MAX_AGE,
        path="/",
        secure=_secure(ctx),
        httponly=True,
        samesite="strict",
    )


def clear_session_cookie(response: Response, ctx: RequestContext) -> None:
    """Expire the session cookie (Max-Age=0), whether or not one was sent."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        secure=_secure(ctx),
        httponly=True,
        samesite="strict",
    )
