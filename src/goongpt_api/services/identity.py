"""Resolve who a request belongs to for quota accounting."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from goongpt_api.core.errors import GateError
from goongpt_api.core.request import RequestContext

logger = logging.getLogger(__name__)

WalletLookup = Callable[[str], str | None]


@dataclass(frozen=True)
class Identity:
    """Either an authenticated wallet or an anonymous client IP."""

    wallet_address: str | None
    ip: str

    @property
    def is_authenticated(self) -> bool:
        return self.wallet_address is not None


def wallet_from_body(ctx: RequestContext) -> str | None:
    wallet = ctx.json_field("wallet_address")
    if isinstance(wallet, str) and wallet.strip():
        return wallet.strip()
    return None


def resolve_identity(ctx: RequestContext, wallet_for_token: WalletLookup | None = None) -> Identity:
    """Body `wallet_address`, else the session's wallet, else anonymous by IP.

    Session lookup failures are logged and fall through to the IP.
    """
    wallet = wallet_from_body(ctx)
    if wallet is None and wallet_for_token is not None:
        token = ctx.session_token
        if token:
            try:
                wallet = wallet_for_token(token)
            except (GateError, PydanticValidationError) as err:
                logger.error("Could not resolve wallet from session: %s", err)
                wallet = None
    return Identity(wallet_address=wallet, ip=ctx.client_ip)
