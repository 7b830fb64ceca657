"""
API request and response models for the auth service REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
A Session's refresh token, owner and raw address never appear in a response
model, so they cannot leak through serialization.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Session, User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CodeGenerateRequest(BaseModel):
    """Request body for POST /api/v1/auth/code/generate.

    Only presence and type are checked here. The address syntax check lives
    in CodeService so every caller gets the same ValidationError.
    """

    email: str = Field(max_length=255)


class CodeVerifyRequest(BaseModel):
    """Request body for POST /api/v1/auth/code/verify."""

    email_code_id: UUID
    code: int = Field(ge=0, le=65535)


class TokenVerifyRequest(BaseModel):
    """Request body for the internal POST /internal/v1/auth/verify."""

    token: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class CodeGenerateResponse(BaseModel):
    email_code_id: str


class AccessTokenResponse(BaseModel):
    """Access token for the Authorization header. The refresh token goes in a cookie."""

    access_token: str
    token_type: str = "bearer"


class SessionResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    location: str
    client_info: str
    last_login: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            id=session.id,
            location=session.location,
            client_info=session.client_info,
            last_login=session.last_login,
        )


class MeResponse(BaseModel):
    id: str
    email: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        return cls(id=user.id, email=user.email, created_at=user.created_at)


class TokenVerifyResponse(BaseModel):
    user_id: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
