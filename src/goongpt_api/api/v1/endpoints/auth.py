# src/goongpt_api/api/v1/endpoints/auth.py
"""Wallet authentication, registration and session endpoints."""

from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from goongpt_api.api.cookies import clear_session_cookie, set_session_cookie
from goongpt_api.api.v1.dependencies import RequestContextDep, ServicesDep, rate_limit
from goongpt_api.core.security import build_challenge_message
from goongpt_api.schemas.auth import (
    AuthRequest,
    AuthResponse,
    ChallengeResponse,
    LogoutResponse,
    SessionStatusResponse,
)
from goongpt_api.schemas.user import RegisterRequest, RegisterResponse
from goongpt_api.services.users import validate_wallet_address

router = APIRouter(tags=["authentication"])


@router.get("/auth/challenge", response_model=ChallengeResponse)
def get_challenge(wallet_address: Annotated[str, Query()]) -> ChallengeResponse:
    """Return the message a wallet should sign to log in.

    Args:
        wallet_address: Base58 wallet address that will sign

    Returns:
        The message text and the millisecond timestamp embedded in it
    """
    wallet_address = validate_wallet_address(wallet_address)
    timestamp = int(time.time() * 1000)
    return ChallengeResponse(
        wallet_address=wallet_address,
        message=build_challenge_message(wallet_address, timestamp),
        timestamp=timestamp,
    )


@router.post(
    "/auth",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit("auth"))],
)
def authenticate(
    payload: AuthRequest,
    response: Response,
    ctx: RequestContextDep,
    services: ServicesDep,
) -> AuthResponse:
    """Verify a wallet signature and open a session for known wallets.

    Unknown wallets get `needs_registration: true` and no session.
    """
    result = services.auth.authenticate(
        payload.wallet_address,
        payload.signed_message,
        payload.message,
    )
    if result.token:
        set_session_cookie(response, result.token, ctx)
    return result


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("auth"))],
)
def register(
    payload: RegisterRequest,
    response: Response,
    ctx: RequestContextDep,
    services: ServicesDep,
) -> RegisterResponse:
    """Create a user for a wallet and log it in."""
    user, session = services.auth.register(
        wallet_address=payload.wallet_address,
        username=payload.username,
        email=payload.email,
        profile_picture=payload.profile_picture,
    )
    set_session_cookie(response, session.token, ctx)
    return RegisterResponse(user=user, token=session.token, expires_at=session.expires_at)


@router.get("/session", response_model=SessionStatusResponse)
def get_session(ctx: RequestContextDep, services: ServicesDep) -> SessionStatusResponse:
    """Report whether the caller holds a live session; never fails."""
    resolved = services.auth.session_status(ctx.session_token)
    if resolved is None:
        return SessionStatusResponse(authenticated=False)
    return SessionStatusResponse(
        authenticated=True,
        user=resolved.user,
        expires_at=resolved.session.expires_at,
    )


@router.post("/logout", response_model=LogoutResponse)
def logout(response: Response, ctx: RequestContextDep, services: ServicesDep) -> LogoutResponse:
    """Delete the caller's session and clear the cookie; always succeeds."""
    services.auth.logout(ctx.session_token)
    clear_session_cookie(response, ctx)
    return LogoutResponse()
