"""
tests/conftest.py -- Shared test fixtures for the catalog auth tests.

This module provides:
  - FrozenClock: a controllable clock injected into TokenService so expiry
    tests advance time instead of sleeping
  - principal_store / session_registry / tokens / service: unit-level fixtures
    backed by in-memory SQLite
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
TestClient fixture because route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The four token settings must be in the environment before api.main is
imported -- Settings has no defaults for them and would refuse to load.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any api/ or core/ import so get_settings() succeeds.
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("ACCESS_TOKEN_EXPIRES_IN", "15m")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("REFRESH_TOKEN_EXPIRES_IN", "7d")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.sessions import SessionRegistry
from auth.store import PrincipalStore
from auth.tokens import TokenService
from core.config import TokenConfig

ACCESS_TTL = 15 * 60
REFRESH_TTL = 7 * 24 * 3600

TOKEN_CONFIG = TokenConfig(
    access_secret="unit-access-secret-0123456789abcdef",
    access_ttl_seconds=ACCESS_TTL,
    refresh_secret="unit-refresh-secret-0123456789abcdef",
    refresh_ttl_seconds=REFRESH_TTL,
)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def tokens(clock: FrozenClock) -> TokenService:
    return TokenService(TOKEN_CONFIG, clock=clock)


@pytest.fixture
def principal_store() -> Generator[PrincipalStore, None, None]:
    store = PrincipalStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def session_registry() -> Generator[SessionRegistry, None, None]:
    registry = SessionRegistry("sqlite:///:memory:")
    yield registry
    registry.close()


@pytest.fixture
def service(principal_store: PrincipalStore, session_registry: SessionRegistry, tokens: TokenService) -> AuthService:
    return AuthService(principal_store, session_registry, tokens)


# ---------------------------------------------------------------------------
# Integration fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test stack into app.state so routes hit isolated
    in-memory DBs and a frozen clock.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.principal_store = service.principals
        app.state.session_registry = service.sessions
        app.state.token_service = service.tokens
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, AuthService, FrozenClock], None, None]:
    """Yield (client, service, clock) over a fresh, isolated database.

    Each test gets its own named shared-memory DB, so registrations and
    sessions never leak between tests.
    """
    name = uuid.uuid4().hex
    db_url = f"sqlite:///file:test_auth_{name}?mode=memory&cache=shared&uri=true"
    clock = FrozenClock()
    service = AuthService(PrincipalStore(db_url), SessionRegistry(db_url), TokenService(TOKEN_CONFIG, clock=clock))

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, service, clock

    service.sessions.close()
    service.principals.close()
