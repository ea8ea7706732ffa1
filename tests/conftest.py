"""
tests/conftest.py -- Shared test fixtures for AuthNest integration tests.

This module provides:
  - _make_test_store(): creates an isolated in-memory user DB
  - _patch_lifespan(): wires the test store into app.state, bypassing real startup
  - api_client: TestClient plus a JWT for a password user, for API tests
  - web_client: TestClient with follow_redirects=False for web route tests
  - fake_google: a mocked authlib client installed as the "google" provider

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

The environment must be prepared before any auth/core import: DEBUG lets
get_settings() auto-generate SESSION_SECRET, BCRYPT_ROUNDS keeps hashing fast,
ALLOWED_HOSTS admits TestClient's "testserver" host, and the Google client
id/secret enable the OAuth routes.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")

import pytest
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient

from asgi import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password

TEST_EMAIL = "tester@example.com"
TEST_PASSWORD = "testpass123"

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth?client_id=test-client-id"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return UserStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state and mocks the OAuth
    registry so no request can reach a real provider.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.oauth = MagicMock()
        yield

    return test_lifespan


def _seed_password_user(user_store: UserStore) -> tuple[int, str]:
    uid = user_store.create_user(User(email=TEST_EMAIL, hashed_password=hash_password(TEST_PASSWORD)))
    token = create_access_token(user_id=uid, email=TEST_EMAIL, expire_seconds=3600)
    return uid, token


# ---------------------------------------------------------------------------
# Module-scoped clients -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def _api_session(request) -> Generator[tuple[TestClient, str, int], None, None]:
    user_store = _make_test_store(f"api_{request.module.__name__}")
    uid, token = _seed_password_user(user_store)

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()


@pytest.fixture(scope="module")
def _web_session(request) -> Generator[tuple[TestClient, str], None, None]:
    user_store = _make_test_store(f"web_{request.module.__name__}")
    _uid, token = _seed_password_user(user_store)

    app.router.lifespan_context = _patch_lifespan(user_store)

    # follow_redirects=False: web tests assert on redirect locations, which
    # are invisible once the client follows them.
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, token

    user_store.close()


# ---------------------------------------------------------------------------
# Per-test views of the module clients
#
# Login and register responses set the session cookie, and httpx keeps it in
# the client's jar. Clearing the jar before every test keeps "unauthenticated"
# tests honest regardless of test order.
# ---------------------------------------------------------------------------


@pytest.fixture
def api_client(_api_session) -> tuple[TestClient, str, int]:
    """Yield (client, token, user_id). The user is TEST_EMAIL / TEST_PASSWORD."""
    client, token, uid = _api_session
    client.cookies.clear()
    return client, token, uid


@pytest.fixture
def web_client(_web_session) -> tuple[TestClient, str]:
    """Yield (client, token) for the TEST_EMAIL password user."""
    client, token = _web_session
    client.cookies.clear()
    return client, token


@pytest.fixture
def fake_google(web_client) -> MagicMock:
    """Install a mocked authlib client as the app's "google" provider.

    Defaults describe a verified Google account; tests override
    authorize_access_token / get to exercise failure paths.
    """
    google = MagicMock()
    google.authorize_redirect = AsyncMock(return_value=RedirectResponse(GOOGLE_AUTHORIZE_URL, status_code=302))
    google.authorize_access_token = AsyncMock(
        return_value={
            "access_token": "ya29.test",
            "token_type": "Bearer",
            "userinfo": {
                "sub": "google-sub-1001",
                "email": "new.google.user@example.com",
                "email_verified": True,
                "given_name": "New",
            },
        }
    )
    google.get = AsyncMock()

    registry = MagicMock()
    registry.create_client.return_value = google
    app.state.oauth = registry
    return google
