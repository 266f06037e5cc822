"""Fixed-window request quotas per identity and action.

Authenticated wallets are counted in the shared key-value store so every
process sees the same window. Anonymous callers are counted per client IP in
process memory; those counters reset on restart.

Store failures on the authenticated path are logged and the request is
allowed: quotas here are abuse mitigation, not billing.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from threading import Lock
from types import MappingProxyType
from typing import Any, Final

from goongpt_api.core.errors import GateError
from goongpt_api.core.request import RequestContext
from goongpt_api.db.time import from_timestamp, to_iso
from goongpt_api.services.identity import WalletLookup, resolve_identity
from goongpt_api.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE: Final[str] = "Too many requests, please try again later"
SWEEP_INTERVAL_SECONDS: Final[float] = 300.0
STALE_AFTER_MS: Final[int] = 3_600_000
_MAX_CAS_ATTEMPTS: Final[int] = 5

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitConfig:
    """Quota for one action type."""

    action_type: str
    window_ms: int
    max_requests: int
    anonymous_max_requests: int
    message: str = DEFAULT_MESSAGE


ACTION_LIMITS: Mapping[str, RateLimitConfig] = MappingProxyType(
    {
        "chat": RateLimitConfig(
            "chat", 60_000, 15, 3,
            "Too many chat requests. Please wait a moment before trying again.",
        ),
        "image": RateLimitConfig(
            "image", 60_000, 10, 2,
            "Too many image requests. Please wait a moment before trying again.",
        ),
        "video": RateLimitConfig(
            "video", 300_000, 5, 1,
            "Too many video requests. Please wait a few minutes before trying again.",
        ),
        "auth": RateLimitConfig(
            "auth", 900_000, 10, 5,
            "Too many authentication attempts. Please try again later.",
        ),
        "asmr": RateLimitConfig(
            "asmr", 60_000, 10, 5,
            "Too many ASMR requests. Please wait a moment before trying again.",
        ),
        "earn_tokens": RateLimitConfig(
            "earn_tokens", 300_000, 60, 60,
            "Too many token earning requests. Please wait a moment.",
        ),
        "token_data": RateLimitConfig(
            "token_data", 300_000, 120, 120,
            "Too many token data requests. Please wait a moment.",
        ),
    }
)


def get_action_config(action_type: str) -> RateLimitConfig:
    try:
        return ACTION_LIMITS[action_type]
    except KeyError:
        raise ValueError(f"Unknown rate-limit action: {action_type}") from None


@dataclass(frozen=True)
class RateLimitRejection:
    """Everything needed to render a 429 response."""

    message: str
    retry_after: int
    limit: int
    reset_at_ms: int

    @property
    def reset_at_iso(self) -> str:
        return to_iso(from_timestamp(self.reset_at_ms / 1000))

    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": self.reset_at_iso,
        }

    def body(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "retryAfter": self.retry_after,
            "limit": self.limit,
            "remaining": 0,
        }


def _reject(config: RateLimitConfig, limit: int, reset_at_ms: int, now_ms: int) -> RateLimitRejection:
    retry_after = max(1, math.ceil((reset_at_ms - now_ms) / 1000))
    return RateLimitRejection(
        message=config.message,
        retry_after=retry_after,
        limit=limit,
        reset_at_ms=reset_at_ms,
    )


@dataclass
class AnonymousEntry:
    count: int
    reset_time: int


class AnonymousRateLimiter:
    """In-memory per-IP counters plus the background sweep that bounds them.

    Counters are keyed by `(action, ip)`. `start()`/`stop()` manage the sweep
    task on the running event loop; request threads and the sweep share one
    lock, held only for a single entry update or deletion.
    """

    def __init__(
        self,
        *,
        sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        stale_after_ms: int = STALE_AFTER_MS,
        clock: Clock = time.time,
    ) -> None:
        self._entries: dict[tuple[str, str], AnonymousEntry] = {}
        self._lock = Lock()
        self._sweep_interval = sweep_interval_seconds
        self._stale_after_ms = stale_after_ms
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stopping: asyncio.Event | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get(self, action_type: str, ip: str) -> AnonymousEntry | None:
        with self._lock:
            entry = self._entries.get((action_type, ip))
            return AnonymousEntry(entry.count, entry.reset_time) if entry else None

    def hit(self, ip: str, config: RateLimitConfig, now_ms: int | None = None) -> RateLimitRejection | None:
        """Count one request from `ip`; return a rejection once over quota."""
        now_ms = self._now_ms() if now_ms is None else now_ms
        key = (config.action_type, ip)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now_ms > entry.reset_time:
                self._entries[key] = AnonymousEntry(count=1, reset_time=now_ms + config.window_ms)
                return None
            if entry.count + 1 > config.anonymous_max_requests:
                reset_time = entry.reset_time
            else:
                entry.count += 1
                return None
        return _reject(config, config.anonymous_max_requests, reset_time, now_ms)

    def sweep(self, now_ms: int | None = None) -> int:
        """Drop entries whose window ended more than the staleness threshold ago."""
        now_ms = self._now_ms() if now_ms is None else now_ms
        removed = 0
        with self._lock:
            keys = list(self._entries)
        for key in keys:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and now_ms - entry.reset_time > self._stale_after_ms:
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.debug("Swept %d stale anonymous rate-limit entries", removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if not self.running:
            # The event binds to the loop it is first awaited on.
            self._stopping = asyncio.Event()
            self._task = asyncio.create_task(self._run(self._stopping))

    async def stop(self) -> None:
        """Stop the periodic sweep."""
        if self._task is None or self._stopping is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self, stopping: asyncio.Event) -> None:
        interval = max(0.01, float(self._sweep_interval))
        while not stopping.is_set():
            try:
                await asyncio.wait_for(stopping.wait(), timeout=interval)
            except TimeoutError:
                self.sweep()


class RateLimiter:
    """Decides whether a request may proceed for a given action."""

    def __init__(
        self,
        store: KeyValueStore,
        anonymous: AnonymousRateLimiter,
        wallet_for_token: WalletLookup | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._store = store
        self.anonymous = anonymous
        self._wallet_for_token = wallet_for_token
        self._clock = clock

    def check_and_consume(self, ctx: RequestContext, config: RateLimitConfig) -> RateLimitRejection | None:
        """Count the request; None means allowed, anything else must become a 429."""
        identity = resolve_identity(ctx, self._wallet_for_token)
        now_ms = int(self._clock() * 1000)
        if identity.wallet_address is not None:
            return self._check_wallet(identity.wallet_address, config, now_ms)
        return self.anonymous.hit(identity.ip, config, now_ms)

    def _check_wallet(self, wallet: str, config: RateLimitConfig, now_ms: int) -> RateLimitRejection | None:
        try:
            return self._consume_window(wallet, config, now_ms)
        except (GateError, KeyError, TypeError, ValueError) as err:
            logger.error(
                "Rate limit check failed for %s/%s, allowing request: %s",
                wallet,
                config.action_type,
                err,
                exc_info=True,
            )
            return None

    def _consume_window(self, wallet: str, config: RateLimitConfig, now_ms: int) -> RateLimitRejection | None:
        key = f"{wallet}:{config.action_type}"
        fresh = {
            "wallet_address": wallet,
            "action_type": config.action_type,
            "request_count": 1,
            "window_start": now_ms,
            "window_end": now_ms + config.window_ms,
        }
        for _ in range(_MAX_CAS_ATTEMPTS):
            current = self._store.get(key)
            if current is None:
                if self._store.add(key, fresh):
                    return None
                continue
            if current["window_end"] < now_ms:
                if self._store.compare_and_set(key, current, fresh):
                    return None
                continue
            if current["request_count"] >= config.max_requests:
                return _reject(config, config.max_requests, current["window_end"], now_ms)
            bumped = {**current, "request_count": current["request_count"] + 1}
            if self._store.compare_and_set(key, current, bumped):
                return None

        logger.warning(
            "Rate limit window for %s/%s kept changing underneath us, allowing request",
            wallet,
            config.action_type,
        )
        return None

    def window(self, wallet: str, action_type: str) -> dict[str, Any] | None:
        """Return the stored window for `wallet`/`action_type` (for inspection)."""
        return self._store.get(f"{wallet}:{action_type}")

    def clear(self) -> None:
        self._store.clear()
        self.anonymous.clear()
