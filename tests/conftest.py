"""
tests/conftest.py -- Shared test fixtures for AuthKeeper.

This module provides:
  - user_store / service: in-memory stores and a stateful AuthService for unit tests
  - api_client: TestClient over the real app with an isolated database

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API fixtures because TestClient runs route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Each API test gets its own database name, so "first user is
admin" always starts from an empty store.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any auth/core import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.sessions import SessionStore
from auth.store import UserStore
from helpers import RecordingMailer, make_settings

# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def session_store(user_store: UserStore) -> SessionStore:
    return SessionStore(user_store.engine)


@pytest.fixture
def service(user_store: UserStore, session_store: SessionStore, mailer: RecordingMailer) -> AuthService:
    return AuthService(user_store, session_store, mailer, make_settings())


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_store() -> UserStore:
    return UserStore(db_url=f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built AuthService into app.state so routes use the
    isolated test database and the recording mailer instead of SMTP.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.users
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, RecordingMailer], None, None]:
    """Yield (client, mailer) for a stateful app with an empty database."""
    store = _make_test_store()
    mailer = RecordingMailer()
    service = AuthService(store, SessionStore(store.engine), mailer, make_settings())
    app.router.lifespan_context = _patch_lifespan(service)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, mailer
    store.close()


@pytest.fixture
def stateless_client() -> Generator[tuple[TestClient, RecordingMailer], None, None]:
    """Yield (client, mailer) for an app running SESSION_MODE=stateless."""
    store = _make_test_store()
    mailer = RecordingMailer()
    service = AuthService(store, None, mailer, make_settings(session_mode="stateless"))
    app.router.lifespan_context = _patch_lifespan(service)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, mailer
    store.close()
