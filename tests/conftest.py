# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("ENVIRONMENT", "development")

from goongpt_api.db.session import create_tables
from goongpt_api.main import app as fastapi_app
from goongpt_api.models import KeyValueEntry
from goongpt_api.services.auth import AuthGate
from goongpt_api.services.container import ServiceContainer, get_services, set_services
from goongpt_api.services.ratelimit import AnonymousRateLimiter, RateLimiter
from goongpt_api.services.sessions import SessionStore
from goongpt_api.services.tokens import TokenLedger
from goongpt_api.services.users import UserStore
from goongpt_api.storage import (
    RATE_LIMIT_NAMESPACE,
    SESSIONS_NAMESPACE,
    USERS_NAMESPACE,
    FileKeyValueStore,
)
from tests.helpers import FakeClock, Wallet

TEST_DB_URL = "sqlite://"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def wallet() -> Wallet:
    return Wallet.generate()


@pytest.fixture()
def other_wallet() -> Wallet:
    return Wallet.generate()


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[Callable[[], Session]]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean table even though stores commit.
        with engine.begin() as conn:
            conn.execute(delete(KeyValueEntry))


@pytest.fixture()
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "storage"


@pytest.fixture()
def users_store(store_dir: Path) -> FileKeyValueStore:
    return FileKeyValueStore(USERS_NAMESPACE, store_dir)


@pytest.fixture()
def users(users_store: FileKeyValueStore, clock: FakeClock) -> UserStore:
    return UserStore(users_store, clock=clock)


@pytest.fixture()
def sessions(store_dir: Path, clock: FakeClock) -> SessionStore:
    return SessionStore(FileKeyValueStore(SESSIONS_NAMESPACE, store_dir), clock=clock)


@pytest.fixture()
def auth_gate(users: UserStore, sessions: SessionStore) -> AuthGate:
    return AuthGate(users, sessions)


@pytest.fixture()
def anonymous(clock: FakeClock) -> AnonymousRateLimiter:
    return AnonymousRateLimiter(clock=clock)


@pytest.fixture()
def limiter(store_dir: Path, anonymous: AnonymousRateLimiter, auth_gate: AuthGate, clock: FakeClock) -> RateLimiter:
    return RateLimiter(
        FileKeyValueStore(RATE_LIMIT_NAMESPACE, store_dir),
        anonymous,
        wallet_for_token=auth_gate.wallet_for_token,
        clock=clock,
    )


@pytest.fixture()
def ledger(users: UserStore, users_store: FileKeyValueStore, clock: FakeClock) -> TokenLedger:
    return TokenLedger(users, users_store, clock=clock)


@pytest.fixture()
def services(auth_gate: AuthGate, limiter: RateLimiter, ledger: TokenLedger) -> ServiceContainer:
    return ServiceContainer(auth=auth_gate, limiter=limiter, tokens=ledger)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, services: ServiceContainer) -> Iterator[TestClient]:
    set_services(services)
    app.dependency_overrides[get_services] = lambda: services
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_services, None)
        set_services(None)


@pytest.fixture()
def registered(auth_gate: AuthGate, wallet: Wallet) -> dict[str, Any]:
    """A registered user with a live session for `wallet`."""
    user, session = auth_gate.register(wallet.address, "alice_01", email="alice@example.com")
    return {"user": user, "session": session, "token": session.token}


@pytest.fixture()
def bearer(registered: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {registered['token']}"}
