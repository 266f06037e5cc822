# tests/services/test_ratelimit.py
"""Tests for fixed-window quotas on wallets and anonymous IPs."""

import asyncio
import logging

import pytest

from goongpt_api.core.errors import StoreUnavailableError
from goongpt_api.core.request import SESSION_COOKIE_NAME, RequestContext
from goongpt_api.services.ratelimit import (
    ACTION_LIMITS,
    AnonymousRateLimiter,
    RateLimitConfig,
    RateLimiter,
    get_action_config,
)
from goongpt_api.storage import FileKeyValueStore
from tests.helpers import FakeClock, Wallet

TIGHT = RateLimitConfig("test", window_ms=60_000, max_requests=3, anonymous_max_requests=2, message="slow down")


def wallet_ctx(address: str) -> RequestContext:
    return RequestContext.build(method="POST", body={"wallet_address": address}, client_host="10.0.0.1")


def ip_ctx(ip: str) -> RequestContext:
    return RequestContext.build(method="POST", headers={"x-forwarded-for": ip})


def test_action_table() -> None:
    chat = ACTION_LIMITS["chat"]
    assert (chat.window_ms, chat.max_requests, chat.anonymous_max_requests) == (60_000, 15, 3)
    assert (ACTION_LIMITS["image"].max_requests, ACTION_LIMITS["image"].anonymous_max_requests) == (10, 2)
    assert ACTION_LIMITS["video"].window_ms == 300_000
    assert ACTION_LIMITS["auth"].window_ms == 900_000
    assert (ACTION_LIMITS["asmr"].max_requests, ACTION_LIMITS["asmr"].anonymous_max_requests) == (10, 5)
    with pytest.raises(ValueError):
        get_action_config("deepfake")


class TestAuthenticatedWindow:
    def test_allows_up_to_max_then_rejects(self, limiter: RateLimiter, wallet: Wallet) -> None:
        ctx = wallet_ctx(wallet.address)

        for _ in range(3):
            assert limiter.check_and_consume(ctx, TIGHT) is None

        rejection = limiter.check_and_consume(ctx, TIGHT)

        assert rejection is not None
        assert rejection.limit == 3
        assert rejection.message == "slow down"
        assert rejection.body() == {"error": "slow down", "retryAfter": 60, "limit": 3, "remaining": 0}
        assert rejection.headers()["X-RateLimit-Remaining"] == "0"
        assert rejection.headers()["Retry-After"] == "60"
        assert limiter.window(wallet.address, "test")["request_count"] == 3

    def test_window_resets_after_expiry(self, limiter: RateLimiter, wallet: Wallet, clock: FakeClock) -> None:
        ctx = wallet_ctx(wallet.address)
        for _ in range(4):
            limiter.check_and_consume(ctx, TIGHT)

        clock.advance(61)

        assert limiter.check_and_consume(ctx, TIGHT) is None
        window = limiter.window(wallet.address, "test")
        assert window["request_count"] == 1
        assert window["window_end"] == window["window_start"] + 60_000

    def test_chat_sixteenth_request_rejected(self, limiter: RateLimiter, wallet: Wallet, clock: FakeClock) -> None:
        ctx = wallet_ctx(wallet.address)
        chat = ACTION_LIMITS["chat"]

        for _ in range(15):
            assert limiter.check_and_consume(ctx, chat) is None
            clock.advance(1)

        rejection = limiter.check_and_consume(ctx, chat)

        assert rejection is not None
        assert 1 <= rejection.retry_after <= 60
        assert rejection.body()["remaining"] == 0

    def test_retry_after_is_at_least_one_second(self, limiter: RateLimiter, wallet: Wallet, clock: FakeClock) -> None:
        ctx = wallet_ctx(wallet.address)
        for _ in range(3):
            limiter.check_and_consume(ctx, TIGHT)

        clock.advance(60)  # exactly at the window end

        assert limiter.check_and_consume(ctx, TIGHT).retry_after == 1

    def test_actions_are_counted_separately(self, limiter: RateLimiter, wallet: Wallet) -> None:
        ctx = wallet_ctx(wallet.address)
        other = RateLimitConfig("other", 60_000, 1, 1)

        for _ in range(3):
            limiter.check_and_consume(ctx, TIGHT)

        assert limiter.check_and_consume(ctx, other) is None

    def test_wallet_resolved_from_session_cookie(
        self, limiter: RateLimiter, wallet: Wallet, registered
    ) -> None:
        ctx = RequestContext.build(cookies={SESSION_COOKIE_NAME: registered["token"]}, client_host="10.0.0.1")

        limiter.check_and_consume(ctx, TIGHT)

        assert limiter.window(wallet.address, "test")["request_count"] == 1
        assert limiter.anonymous.get("test", "10.0.0.1") is None

    def test_fails_open_when_store_unavailable(
        self, anonymous: AnonymousRateLimiter, wallet: Wallet, mocker, caplog: pytest.LogCaptureFixture
    ) -> None:
        store = mocker.MagicMock()
        store.get.side_effect = StoreUnavailableError()
        limiter = RateLimiter(store, anonymous)

        with caplog.at_level(logging.ERROR, logger="goongpt_api.services.ratelimit"):
            for _ in range(10):
                assert limiter.check_and_consume(wallet_ctx(wallet.address), TIGHT) is None

        assert "allowing request" in caplog.text

    def test_fails_open_when_window_keeps_changing(
        self, anonymous: AnonymousRateLimiter, wallet: Wallet, mocker, caplog: pytest.LogCaptureFixture
    ) -> None:
        store = mocker.MagicMock()
        store.get.return_value = None
        store.add.return_value = False
        limiter = RateLimiter(store, anonymous)

        with caplog.at_level(logging.WARNING, logger="goongpt_api.services.ratelimit"):
            assert limiter.check_and_consume(wallet_ctx(wallet.address), TIGHT) is None

        assert "kept changing" in caplog.text

    def test_shared_store_counts_across_limiters(
        self, store_dir, wallet: Wallet, clock: FakeClock
    ) -> None:
        store = FileKeyValueStore("ratelimit", store_dir)
        first = RateLimiter(store, AnonymousRateLimiter(clock=clock), clock=clock)
        second = RateLimiter(store, AnonymousRateLimiter(clock=clock), clock=clock)
        ctx = wallet_ctx(wallet.address)

        first.check_and_consume(ctx, TIGHT)
        second.check_and_consume(ctx, TIGHT)
        first.check_and_consume(ctx, TIGHT)

        assert second.check_and_consume(ctx, TIGHT) is not None


class TestAnonymousWindow:
    def test_per_ip_quota(self, limiter: RateLimiter) -> None:
        for _ in range(2):
            assert limiter.check_and_consume(ip_ctx("203.0.113.1"), TIGHT) is None

        rejection = limiter.check_and_consume(ip_ctx("203.0.113.1"), TIGHT)

        assert rejection is not None
        assert rejection.limit == 2

    def test_ips_are_independent(self, limiter: RateLimiter) -> None:
        for _ in range(3):
            limiter.check_and_consume(ip_ctx("203.0.113.1"), TIGHT)

        assert limiter.check_and_consume(ip_ctx("203.0.113.2"), TIGHT) is None

    def test_rejection_does_not_extend_count(self, limiter: RateLimiter, anonymous: AnonymousRateLimiter) -> None:
        for _ in range(5):
            limiter.check_and_consume(ip_ctx("203.0.113.1"), TIGHT)

        assert anonymous.get("test", "203.0.113.1").count == 2

    def test_window_resets(self, limiter: RateLimiter, clock: FakeClock) -> None:
        for _ in range(3):
            limiter.check_and_consume(ip_ctx("203.0.113.1"), TIGHT)

        clock.advance(61)

        assert limiter.check_and_consume(ip_ctx("203.0.113.1"), TIGHT) is None

    def test_unknown_session_falls_back_to_ip(self, limiter: RateLimiter, anonymous: AnonymousRateLimiter) -> None:
        ctx = RequestContext.build(headers={"Authorization": "Bearer nope", "x-real-ip": "198.51.100.4"})

        limiter.check_and_consume(ctx, TIGHT)

        assert anonymous.get("test", "198.51.100.4").count == 1

    def test_sweep_drops_only_stale_entries(self, clock: FakeClock) -> None:
        anonymous = AnonymousRateLimiter(clock=clock)
        anonymous.hit("old", TIGHT)
        clock.advance(60 + 3600 + 1)
        anonymous.hit("fresh", TIGHT)

        assert anonymous.sweep() == 1
        assert anonymous.get("test", "old") is None
        assert anonymous.get("test", "fresh") is not None
        assert len(anonymous) == 1


async def test_sweeper_runs_in_background(clock: FakeClock) -> None:
    anonymous = AnonymousRateLimiter(sweep_interval_seconds=0.01, clock=clock)
    anonymous.hit("203.0.113.1", TIGHT)
    clock.advance(7200)

    await anonymous.start()
    assert anonymous.running is True
    for _ in range(100):
        if len(anonymous) == 0:
            break
        await asyncio.sleep(0.01)
    await anonymous.stop()

    assert len(anonymous) == 0
    assert anonymous.running is False


async def test_stop_without_start_is_noop() -> None:
    await AnonymousRateLimiter().stop()
