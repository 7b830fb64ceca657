"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores and services do the work.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class VerificationCode:
    """A one-time code emailed to prove control of an address.

    attempts counts mismatched submissions only. Once it exceeds
    MAX_CODE_ATTEMPTS (auth/codes.py) or expires_at passes, the code is
    deleted on the next verification attempt.
    """

    id: str
    email: str
    code: int
    expires_at: datetime
    attempts: int = 0


@dataclass
class User:
    """A vault owner, identified by the email they verified.

    is_super is reserved for an authorization layer outside this service;
    nothing here reads or writes it after creation.
    """

    id: str
    email: str
    created_at: datetime
    is_super: bool = False


@dataclass
class Session:
    """A logical login. token holds the only refresh token currently valid for it."""

    id: str
    token: str
    user_id: str
    ip: str
    location: str
    client_info: str
    last_login: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class Claims:
    """Verified contents of an access or refresh token."""

    user_id: str
    session_id: str
    expires_at: datetime
    kind: str  # "access" or "refresh"
