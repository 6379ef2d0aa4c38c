"""
tests/conftest.py -- Shared test fixtures for the blog API.

This module provides:
  - engine / user_store / post_store: isolated in-memory database per test
  - client: TestClient on the real app with a patched lifespan
  - admin / reader: persisted users of each role with a valid bearer token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
A fresh uuid per test keeps tests from seeing each other's rows.

Environment must be set before any auth/core import:
  DEBUG=true              -- get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4         -- minimum bcrypt cost keeps the suite fast
  RATE_LIMIT_ENABLED=false -- the shared limiter would otherwise trip mid-suite
"""

from __future__ import annotations

import os
import time
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set env before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token
from core.db import create_db_engine
from posts.store import PostStore

PASSWORD = "password123"


@dataclass
class Principal:
    """A persisted user plus ready-to-send auth headers."""

    user: User
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    url = f"sqlite:///file:test_blog_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    eng = create_db_engine(url)
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def post_store(engine: Engine, user_store: UserStore) -> PostStore:
    # user_store first so the users table exists before posts references it.
    return PostStore(engine)


def _principal(store: UserStore, username: str, role: str) -> Principal:
    user = store.create_user(username=username, email=f"{username}@test.com", password=PASSWORD, role=role)
    return Principal(user=user, token=create_access_token(user))


@pytest.fixture
def admin(user_store: UserStore) -> Principal:
    return _principal(user_store, "admin", "admin")


@pytest.fixture
def reader(user_store: UserStore) -> Principal:
    return _principal(user_store, "reader", "user")


# ---------------------------------------------------------------------------
# App fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine, user_store: UserStore, post_store: PostStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    the isolated test DB rather than DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.started_at = time.monotonic()
        app.state.engine = engine
        app.state.user_store = user_store
        app.state.post_store = post_store
        yield

    return test_lifespan


@pytest.fixture
def client(engine: Engine, user_store: UserStore, post_store: PostStore) -> Generator[TestClient, None, None]:
    """TestClient on the real app: real routing, middleware and dependencies, test DB."""
    app.router.lifespan_context = _patch_lifespan(engine, user_store, post_store)
    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client
