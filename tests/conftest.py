"""
tests/conftest.py -- Shared test fixtures for VSS platform tests.

This module provides:
  - make_store() / user_store: isolated named shared-memory SQLite UserStore
  - FakeClock / clock: manually advanced clock for TokenService
  - _patch_lifespan(): wires test collaborators into app.state, bypassing real startup
  - api_client: TestClient + the injected collaborators, with user "alice" seeded

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import so
get_settings() auto-generates SECRET_KEY and hashing stays fast.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any auth/core import (get_settings() is cached).
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.admission import AdmissionGate
from api.main import app
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import TokenService

TEST_SECRET = "test-signing-secret-0123456789abcdef0123456789"

_db_counter = itertools.count()


def make_store(name: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Each call gets a fresh database: the counter suffix keeps names unique
    across fixtures in the same process.
    """
    return UserStore(db_url=f"sqlite:///file:test_{name}_{next(_db_counter)}?mode=memory&cache=shared&uri=true")


class FakeClock:
    """Manually advanced clock for TokenService."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _patch_lifespan(user_store: UserStore, tokens: TokenService, admission: AdmissionGate):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.tokens = tokens
        app.state.admission = admission
        yield

    return test_lifespan


@dataclass
class ApiContext:
    client: TestClient
    store: UserStore
    tokens: TokenService
    secret: str
    alice_id: int


@pytest.fixture(scope="module")
def api_client() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real middleware, dependencies and route handlers against an isolated
    store. User alice/correct is seeded before the client starts.
    """
    store = make_store("api")
    alice_id = store.insert_user("alice", "alice@example.com", hash_password("correct"))
    tokens = TokenService(TEST_SECRET)
    admission = AdmissionGate(limit=1000, window_seconds=900)

    app.router.lifespan_context = _patch_lifespan(store, tokens, admission)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, store=store, tokens=tokens, secret=TEST_SECRET, alice_id=alice_id)

    store.close()


@pytest.fixture
def fresh_gate(api_client: ApiContext) -> Generator[AdmissionGate, None, None]:
    """Swap in an empty admission gate for one test, restoring the shared one afterwards.

    Tests that count requests need a known starting point; the module-scoped
    client has already been counting.
    """
    state = api_client.client.app.state
    original = state.admission
    gate = AdmissionGate(limit=1000, window_seconds=900)
    state.admission = gate
    yield gate
    state.admission = original


@pytest.fixture
def auth_headers(api_client: ApiContext) -> dict[str, str]:
    token = api_client.tokens.issue({"id": api_client.alice_id, "username": "alice"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """Fresh, empty UserStore for unit tests."""
    store = make_store("unit")
    yield store
    store.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
