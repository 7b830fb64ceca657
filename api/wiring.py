"""
api/wiring.py -- Build the store and services from Settings.

Both ASGI apps (api/main.py public, api/internal.py internal) and the CLI
construct their collaborators here so the secret key, token lifetimes and
decoration strategies are configured in exactly one place. The secret is
passed into SessionService explicitly; nothing downstream reads it from
global state.
"""

from __future__ import annotations

from auth.codes import CodeService
from auth.geo import IpApiLocator
from auth.sessions import SessionService
from auth.store import AuthStore
from core.config import Settings
from notify.sender import Sender, build_sender


def build_store(settings: Settings) -> AuthStore:
    return AuthStore(db_url=settings.database_url)


def build_session_service(settings: Settings, store: AuthStore) -> SessionService:
    return SessionService(
        store,
        secret_key=settings.secret_key,
        access_expire_seconds=settings.access_token_expire_seconds,
        refresh_expire_seconds=settings.refresh_token_expire_seconds,
        locate=IpApiLocator(settings.geo_lookup_url, timeout=settings.geo_timeout_seconds),
    )


def build_code_service(settings: Settings, store: AuthStore, sender: Sender | None = None) -> CodeService:
    return CodeService(store, sender or build_sender(settings))
