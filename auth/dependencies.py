"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The access token travels as "Authorization: Bearer <token>". The refresh
token is never accepted here; it only lives in the path-scoped cookie read
by the /auth/token routes.

get_current_user_id() is the local counterpart of the remote verification
endpoint: both end in SessionService.parse_token(), so a token accepted by
one is accepted by the other.

Layer rule: no imports from api/ or notify/.
  auth/dependencies.py may import from fastapi (for Request/HTTPException)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.codes import CodeService
from auth.sessions import SessionService
from core.errors import InvalidTokenError


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service


def get_code_service(request: Request) -> CodeService:
    return request.app.state.code_service


def bearer_token(request: Request) -> str:
    """Return the raw bearer credential or raise InvalidTokenError (401)."""
    header = request.headers.get("Authorization", "")
    if not header:
        raise InvalidTokenError("Authorization header is required")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidTokenError("Invalid Authorization header")
    return token.strip()


def get_current_user_id(request: Request) -> str:
    """Require a valid access token. Raises 401 (generic message) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user_id: str = Depends(get_current_user_id)): ...
    """
    return get_session_service(request).authenticate(bearer_token(request))
