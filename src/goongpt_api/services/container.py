"""Process-wide wiring of stores and services."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from goongpt_api.core.settings import Settings, settings as default_settings
from goongpt_api.services.auth import AuthGate
from goongpt_api.services.ratelimit import AnonymousRateLimiter, RateLimiter
from goongpt_api.services.sessions import SessionStore
from goongpt_api.services.tokens import TokenLedger
from goongpt_api.services.users import UserStore
from goongpt_api.storage import (
    RATE_LIMIT_NAMESPACE,
    SESSIONS_NAMESPACE,
    USERS_NAMESPACE,
    open_store,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """The services one API process shares across requests."""

    auth: AuthGate
    limiter: RateLimiter
    tokens: TokenLedger

    @property
    def anonymous(self) -> AnonymousRateLimiter:
        return self.limiter.anonymous

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> ServiceContainer:
        config = config or default_settings
        users_store = open_store(USERS_NAMESPACE, config)
        users = UserStore(users_store)
        auth = AuthGate(users, SessionStore(open_store(SESSIONS_NAMESPACE, config)))
        anonymous = AnonymousRateLimiter(
            sweep_interval_seconds=config.rate_limit_sweep_interval_seconds,
            stale_after_ms=int(config.rate_limit_stale_after_seconds * 1000),
        )
        limiter = RateLimiter(
            open_store(RATE_LIMIT_NAMESPACE, config),
            anonymous,
            wallet_for_token=auth.wallet_for_token,
        )
        tokens = TokenLedger(users, users_store, daily_limit=config.daily_token_limit)
        logger.info("Services ready on %s storage", config.effective_storage_backend)
        return cls(auth=auth, limiter=limiter, tokens=tokens)

    def reset(self) -> None:
        """Drop users, sessions, rate-limit windows and anonymous counters."""
        self.auth.reset()
        self.limiter.clear()


class _ContainerSingleton:
    _instance: ServiceContainer | None = None

    @classmethod
    def get_instance(cls) -> ServiceContainer:
        if cls._instance is None:
            cls._instance = ServiceContainer.from_settings()
        return cls._instance

    @classmethod
    def set_instance(cls, container: ServiceContainer | None) -> None:
        cls._instance = container


def get_services() -> ServiceContainer:
    """Return the process-wide service container, building it on first use."""
    return _ContainerSingleton.get_instance()


def set_services(container: ServiceContainer | None) -> None:
    """Replace (or with None, forget) the process-wide container."""
    _ContainerSingleton.set_instance(container)
