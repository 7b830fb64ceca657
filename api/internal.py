"""
api/internal.py -- Remote identity verification endpoint for trusted services.

A separate ASGI app, meant to listen on an internal-only address
(INTERNAL_PORT, default 9090) that only other services can reach. Access
control is network-level trust; there is no per-caller identity.

Route:
  POST /internal/v1/auth/verify   {"token": "<bearer>"} -> 200 {"user_id": "..."}
                                                         -> 401 generic "Invalid token"

The handler delegates entirely to SessionService.authenticate(), the same
call the public app's bearer dependency makes, so the signing secret never
leaves this process and both paths agree on every token.

Run with:  uvicorn asgi:internal_app --host 10.0.0.5 --port 9090
           python main.py serve
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from api.handlers import register_exception_handlers
from api.models import TokenVerifyRequest, TokenVerifyResponse
from api.wiring import build_session_service, build_store
from auth.dependencies import get_session_service
from auth.sessions import SessionService
from core.config import get_settings

logger = logging.getLogger("vaultauth.internal")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    app.state.store = build_store(settings)
    app.state.session_service = build_session_service(settings, app.state.store)
    logger.info("Internal verification endpoint ready")

    yield

    app.state.store.close()


internal_app = FastAPI(
    title="Vault Auth internal API",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

register_exception_handlers(internal_app)


@internal_app.post("/internal/v1/auth/verify", response_model=TokenVerifyResponse)
def verify_token(
    body: TokenVerifyRequest,
    sessions: SessionService = Depends(get_session_service),
) -> TokenVerifyResponse:
    """Exchange a bearer access token for the user id it was issued to."""
    return TokenVerifyResponse(user_id=sessions.authenticate(body.token))
