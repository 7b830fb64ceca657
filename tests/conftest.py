"""
tests/conftest.py -- Shared test fixtures for the vault auth integration tests.

This module provides:
  - _make_test_store(): creates an isolated in-memory DB for the auth tables
  - _patch_lifespan(): wires the test store and services into app.state,
    bypassing real startup (no SMTP, no geolocation HTTP calls)
  - api_client: TestClient for the public API plus the store and the
    recording sender, so tests can read the emailed code
  - internal_client: TestClient for the internal verification app, sharing
    the same store and secret as api_client

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The clients use base_url https://testserver because the refresh cookie is
Secure; an http base URL would make the cookie jar drop it.

The DEBUG env var must be set before any auth/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.internal import internal_app
from api.limiter import limiter
from api.main import app
from auth.codes import CodeService
from auth.geo import no_location
from auth.sessions import SessionService
from auth.store import AuthStore
from core.config import get_settings
from tests.fakes import RecordingSender

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> AuthStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api').
    """
    return AuthStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: AuthStore, sessions: SessionService, codes: CodeService):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can cancel a
    real asyncio.Task, exactly as the production lifespan does.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.session_service = sessions
        app.state.code_service = codes
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@dataclass
class ApiHarness:
    client: TestClient
    store: AuthStore
    sender: RecordingSender
    sessions: SessionService

    def login(self, email: str, user_agent: str = "pytest") -> tuple[str, str]:
        """Run generate + verify and return (access_token, refresh_token)."""
        resp = self.client.post("/api/v1/auth/code/generate", json={"email": email})
        assert resp.status_code == 201, resp.text
        code_id = resp.json()["email_code_id"]
        resp = self.client.post(
            "/api/v1/auth/code/verify",
            json={"email_code_id": code_id, "code": self.sender.last_code()},
            headers={"User-Agent": user_agent},
        )
        assert resp.status_code in (200, 201), resp.text
        return resp.json()["access_token"], resp.cookies[get_settings().refresh_cookie_name]


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness wired to a fresh in-memory store.

    Rate limiting is switched off so tests can request as many codes as they
    need from the single TestClient address.
    """
    settings = get_settings()
    store = _make_test_store(request.module.__name__.rsplit(".", 1)[-1])
    sender = RecordingSender()
    sessions = SessionService(store, secret_key=settings.secret_key, locate=no_location)
    codes = CodeService(store, sender)

    app.router.lifespan_context = _patch_lifespan(store, sessions, codes)
    limiter.enabled = False

    with TestClient(app, base_url="https://testserver", raise_server_exceptions=True) as client:
        yield ApiHarness(client=client, store=store, sender=sender, sessions=sessions)

    limiter.enabled = True
    store.close()


@pytest.fixture(scope="module")
def internal_client(api_client: ApiHarness) -> Generator[TestClient, None, None]:
    """TestClient for the internal verification app, sharing api_client's services."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = api_client.store
        app.state.session_service = api_client.sessions
        yield

    internal_app.router.lifespan_context = test_lifespan
    with TestClient(internal_app, raise_server_exceptions=True) as client:
        yield client
