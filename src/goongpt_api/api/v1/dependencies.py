"""Shared API dependencies for services, rate limiting and authentication."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request
from starlette.concurrency import run_in_threadpool

from goongpt_api.api.request import build_request_context, context_from_request
from goongpt_api.core.errors import RateLimitExceeded
from goongpt_api.core.request import RequestContext
from goongpt_api.services.auth import AuthenticatedSession
from goongpt_api.services.container import ServiceContainer, get_services
from goongpt_api.services.ratelimit import get_action_config

# Type alias for the process-wide service container
ServicesDep = Annotated[ServiceContainer, Depends(get_services)]


def get_request_context(request: Request) -> RequestContext:
    """Request headers, cookies and peer address, without the body."""
    return context_from_request(request)


RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]


def rate_limit(action_type: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency that counts the request against `action_type`'s quota.

    Args:
        action_type: Key into the action quota table

    Returns:
        Dependency raising RateLimitExceeded once the caller is over quota
    """
    config = get_action_config(action_type)

    async def enforce(request: Request, services: ServicesDep) -> None:
        ctx = await build_request_context(request)
        rejection = await run_in_threadpool(services.limiter.check_and_consume, ctx, config)
        if rejection is not None:
            raise RateLimitExceeded(rejection)

    enforce.__name__ = f"rate_limit_{action_type}"
    return enforce


def get_current_session(ctx: RequestContextDep, services: ServicesDep) -> AuthenticatedSession:
    """Resolve the caller's session from the cookie or a bearer token.

    Raises:
        AuthenticationError: If the token is missing, unknown or expired
    """
    return services.auth.require(ctx.session_token)


# Type alias for current session dependency
CurrentSessionDep = Annotated[AuthenticatedSession, Depends(get_current_session)]
