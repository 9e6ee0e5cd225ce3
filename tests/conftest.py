"""
tests/conftest.py -- Shared test fixtures for Habit.

This module provides:
  - settings: a Settings instance with a fixed key and bcrypt_rounds=4
  - clock: a frozen, manually advanced clock for token-window tests
  - store / recording_store: in-memory UserStore, optionally wrapped to
    record every write
  - service: an AuthService wired from the above via build_auth_service()
  - api_client: TestClient over the real FastAPI app with a patched lifespan
  - server_error_client: the same, returning 500 responses instead of raising

Design: every store uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers, and AuthGate runs
token verification, in a thread pool. Plain :memory: DBs are per-connection
and would present a blank schema to each worker thread.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any core/api import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import Credential
from auth.service import AuthService, build_auth_service
from auth.store import UserStore
from core.config import Settings

TEST_SECRET_KEY = "test-secret-key-that-is-at-least-32-characters"
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

TEST_NAME = "ElonMusk"
TEST_EMAIL = "elon@spacex.com"
TEST_PASSWORD = "g0t0m@rs"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FrozenClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingStore:
    """CredentialStore wrapper that records every write before delegating."""

    def __init__(self, inner: UserStore) -> None:
        self.inner = inner
        self.writes: list[tuple[str, Credential]] = []

    def find_by_login_key(self, key: str) -> Credential | None:
        return self.inner.find_by_login_key(key)

    def find_by_id(self, identifier: str) -> Credential | None:
        return self.inner.find_by_id(identifier)

    def save(self, credential: Credential) -> Credential:
        self.writes.append(("save", credential))
        return self.inner.save(credential)

    def update(self, credential: Credential, expected_epoch: int) -> bool:
        self.writes.append(("update", credential))
        return self.inner.update(credential, expected_epoch)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(debug=True, secret_key=TEST_SECRET_KEY, bcrypt_rounds=4, token_ttl_seconds=600)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore(_shared_memory_url())
    yield s
    s.close()


@pytest.fixture
def recording_store(store: UserStore) -> RecordingStore:
    return RecordingStore(store)


@pytest.fixture
def service(settings: Settings, recording_store: RecordingStore, clock: FrozenClock) -> AuthService:
    return build_auth_service(settings, recording_store, clock=clock)


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


def _shared_memory_url() -> str:
    return f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _patch_lifespan(user_store: UserStore, auth_service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test store and service into app.state so TestClient
    routes see an isolated database and the test signing key.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


def _client_over_isolated_store(
    settings: Settings, raise_server_exceptions: bool
) -> Generator[tuple[TestClient, AuthService], None, None]:
    user_store = UserStore(_shared_memory_url())
    auth_service = build_auth_service(settings, user_store)

    app.router.lifespan_context = _patch_lifespan(user_store, auth_service)
    limiter.reset()

    with TestClient(app, raise_server_exceptions=raise_server_exceptions) as client:
        yield client, auth_service

    user_store.close()


@pytest.fixture
def api_client(settings: Settings) -> Generator[tuple[TestClient, AuthService], None, None]:
    """Yield (client, service) over the real app with an isolated store.

    Each test gets its own named in-memory database, so registrations never
    leak between tests. Rate-limit counters are reset so every test starts
    with a full login allowance.
    """
    yield from _client_over_isolated_store(settings, raise_server_exceptions=True)


@pytest.fixture
def server_error_client(settings: Settings) -> Generator[tuple[TestClient, AuthService], None, None]:
    """Like api_client, but unhandled server errors come back as responses.

    Use it to assert on the 500 internal_error envelope instead of having
    TestClient re-raise the exception into the test.
    """
    yield from _client_over_isolated_store(settings, raise_server_exceptions=False)
