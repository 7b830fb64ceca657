"""
api/routes/v1/auth.py -- One-time code login, token refresh and session endpoints.

Routes:
  POST   /api/v1/auth/code/generate     -- email a one-time code; 201 {email_code_id}
  POST   /api/v1/auth/code/verify       -- exchange code for tokens; 201 new user / 200 existing
  POST   /api/v1/auth/token             -- rotate refresh cookie; 200 {access_token}
  DELETE /api/v1/auth/token             -- log out the cookie's session; 204
  GET    /api/v1/auth/sessions          -- list the caller's sessions (requires auth)
  DELETE /api/v1/auth/sessions/{id}     -- revoke one of the caller's sessions (requires auth)
  GET    /api/v1/auth/me                -- current user info (requires auth)

Token transport:
  The access token is returned in the JSON body for the client to send as
  "Authorization: Bearer <token>". The refresh token is set as an httpOnly,
  Secure, SameSite=Strict cookie scoped to /api/v1/auth/token, so the browser
  only ever sends it to the refresh and logout routes.

Security:
  [H2] POST /code/generate is rate-limited per IP (CODE_RATE_LIMIT).
  [M5] Cache-Control: no-store on every response that carries a token.
  IDOR guard: DELETE /sessions/{id} passes user_id to the store; the store
  deletes only when both match.

Handlers are plain def: FastAPI runs them in its thread pool, one worker per
request, and the store calls inside are blocking.

No postponed annotations in this module: FastAPI resolves string annotations
against the endpoint's __globals__, which for the slowapi-wrapped
generate_code are slowapi's, not ours.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AccessTokenResponse,
    CodeGenerateRequest,
    CodeGenerateResponse,
    CodeVerifyRequest,
    MeResponse,
    SessionResponse,
)
from auth.codes import CodeService
from auth.dependencies import get_code_service, get_current_user_id, get_session_service
from auth.models import TokenPair
from auth.sessions import SessionService
from core.config import get_settings
from core.errors import InvalidTokenError, NotFoundError

_settings = get_settings()

# Auth policy:
# - POST   /auth/code/generate:   public -- rate limited
# - POST   /auth/code/verify:     public -- the code is the credential
# - POST   /auth/token:           refresh cookie
# - DELETE /auth/token:           refresh cookie
# - GET    /auth/sessions:        requires auth (get_current_user_id)
# - DELETE /auth/sessions/{id}:   requires auth + ownership check in store
# - GET    /auth/me:              requires auth (get_current_user_id)
router = APIRouter()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else ""


def _token_response(tokens: TokenPair, status_code: int = 200) -> JSONResponse:
    """Body carries the access token; the refresh token goes into the scoped cookie."""
    resp = JSONResponse(
        status_code=status_code,
        content=AccessTokenResponse(access_token=tokens.access_token).model_dump(),
    )
    resp.set_cookie(
        _settings.refresh_cookie_name,
        value=tokens.refresh_token,
        max_age=_settings.refresh_cookie_max_age,
        path=_settings.refresh_cookie_path,
        httponly=True,
        secure=_settings.secure_cookies,
        samesite="strict",
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


def _refresh_cookie(request: Request) -> str:
    token = request.cookies.get(_settings.refresh_cookie_name)
    if not token:
        raise InvalidTokenError("Refresh token is missing")
    return token


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/code/generate", response_model=CodeGenerateResponse, status_code=201)
@limiter.limit(_settings.code_rate_limit)  # [H2] below @router so the registered endpoint is the limited one
def generate_code(
    request: Request,
    body: CodeGenerateRequest,
    codes: CodeService = Depends(get_code_service),
) -> CodeGenerateResponse:
    """Email a one-time code. Only the code's id is returned, never its value."""
    return CodeGenerateResponse(email_code_id=codes.generate_code(body.email))


@router.post("/auth/code/verify", response_model=AccessTokenResponse)
def verify_code(
    request: Request,
    body: CodeVerifyRequest,
    codes: CodeService = Depends(get_code_service),
    sessions: SessionService = Depends(get_session_service),
) -> JSONResponse:
    """Consume a one-time code and start a session.

    201 when this login created the user, 200 when the user already existed.
    """
    user, is_new_user = codes.verify_code(str(body.email_code_id), body.code)
    tokens = sessions.create_session(user.id, request.headers.get("User-Agent"), _client_ip(request))
    return _token_response(tokens, status_code=201 if is_new_user else 200)


@router.post("/auth/token", response_model=AccessTokenResponse)
def refresh_token(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
) -> JSONResponse:
    """Rotate the session's refresh token and issue a new access token."""
    tokens = sessions.update_session(_refresh_cookie(request), request.headers.get("User-Agent"), _client_ip(request))
    return _token_response(tokens)


@router.delete("/auth/token", status_code=204)
def logout(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
) -> Response:
    """Delete the session the refresh cookie belongs to and clear the cookie."""
    sessions.delete_session_by_token(_refresh_cookie(request))
    resp = Response(status_code=204)
    resp.delete_cookie(
        _settings.refresh_cookie_name,
        path=_settings.refresh_cookie_path,
        httponly=True,
        secure=_settings.secure_cookies,
        samesite="strict",
    )
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/sessions", response_model=list[SessionResponse])
def list_sessions(
    user_id: str = Depends(get_current_user_id),
    sessions: SessionService = Depends(get_session_service),
) -> list[SessionResponse]:
    """List the caller's sessions. Refresh tokens are never returned."""
    return [SessionResponse.from_session(s) for s in sessions.get_sessions_list(user_id)]


@router.delete("/auth/sessions/{session_id}", status_code=204)
def delete_session(
    session_id: UUID,
    user_id: str = Depends(get_current_user_id),
    sessions: SessionService = Depends(get_session_service),
) -> Response:
    """Revoke one of the caller's sessions [IDOR guard].

    Another user's session id yields the same 404 as a missing one.
    """
    sessions.delete_session(str(session_id), user_id=user_id)
    return Response(status_code=204)


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, user_id: str = Depends(get_current_user_id)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    user = request.app.state.store.get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return MeResponse.from_user(user)
