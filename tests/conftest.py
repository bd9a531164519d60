"""
tests/conftest.py -- Shared test fixtures for the social graph test suite.

This module provides:
  - engine: isolated named shared-memory SQLite database per test
  - user_store / follow_store / post_store / registry / graph / deleter:
    the real services wired onto that engine (unit tests)
  - tokens: TokenService with the test signing key
  - client: TestClient over the real FastAPI app with a patched lifespan
  - make_account: register + login through HTTP, returns (user_id, token)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process.

SECRET_KEY, BCRYPT_ROUNDS and ALLOWED_HOSTS must be set before any api/auth
import so get_settings() builds the test configuration.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any api/auth/core import so get_settings() sees them.
os.environ.setdefault("SECRET_KEY", "test-signing-key-0123456789abcdef0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app, settings, wire_services
from auth.identity import IdentityRegistry
from auth.store import UserStore
from auth.tokens import TokenService
from core.database import create_db_engine
from graph.deletion import AccountDeleter
from graph.service import FollowGraph
from graph.store import FollowStore
from posts.store import PostStore

PASSWORD = "password1"


# ---------------------------------------------------------------------------
# Storage and services
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """A fresh shared-memory database per test; the name keeps tests isolated."""
    url = f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    eng = create_db_engine(url)
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def follow_store(engine: Engine) -> FollowStore:
    return FollowStore(engine)


@pytest.fixture
def post_store(engine: Engine) -> PostStore:
    return PostStore(engine)


@pytest.fixture
def registry(user_store: UserStore) -> IdentityRegistry:
    return IdentityRegistry(user_store, bcrypt_rounds=4)


@pytest.fixture
def graph(user_store: UserStore, follow_store: FollowStore) -> FollowGraph:
    return FollowGraph(user_store, follow_store)


@pytest.fixture
def deleter(engine: Engine, user_store: UserStore, follow_store: FollowStore, post_store: PostStore) -> AccountDeleter:
    return AccountDeleter(engine, user_store, follow_store, post_store)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService.from_settings(settings)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine):
    """Return an async context manager that replaces the real lifespan.

    Wires the services onto the test engine so TestClient routes see the
    isolated in-memory database rather than the configured one.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, settings, engine)
        yield

    return test_lifespan


@pytest.fixture
def client(engine: Engine) -> Generator[TestClient, None, None]:
    """TestClient over the real app; route handlers hit the per-test database."""
    app.router.lifespan_context = _patch_lifespan(engine)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def make_account(client: TestClient) -> Callable[..., tuple[str, str]]:
    """Register and log in through the API. Returns (user_id, token)."""

    def _make(username: str, email: str | None = None, password: str = PASSWORD) -> tuple[str, str]:
        email = email or f"{username}@example.com"
        resp = client.post("/auth/register", json={"email": email, "password": password, "username": username})
        assert resp.status_code == 201, resp.text
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        return data["userId"], data["token"]

    return _make


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    return bearer
