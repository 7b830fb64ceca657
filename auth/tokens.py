"""
auth/tokens.py -- JWT encode / decode for access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. Both token kinds carry user_id, session_id,
       kind ("access" / "refresh") and exp. They differ only in lifetime and
       kind, so a token of one kind is never accepted where the other is
       expected.

  Secret: passed in by the caller on every call. SessionService holds the
       process-wide secret it was constructed with; nothing here reads
       configuration or global state.

  Expiry: jose's own wall-clock "exp" check is switched off; decode_token()
       compares exp with the supplied clock instead, so the accept/reject
       decision depends only on (token, secret, clock) -- identical for the
       local bearer dependency and the remote verification endpoint.

  Errors: every failure raises an UnauthorizedError subclass whose public
       message is the fixed "Invalid token". The reason goes to .detail.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import Claims
from core.errors import InvalidTokenError, TokenExpiredError

ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"
_KINDS = {ACCESS, REFRESH}


def encode_token(
    secret: str,
    user_id: str,
    session_id: str,
    kind: str,
    expires_in: timedelta,
    now: datetime | None = None,
) -> str:
    """Sign a token binding user_id to session_id for expires_in."""
    if kind not in _KINDS:
        raise ValueError(f"Unknown token kind: {kind!r}")
    issued = now or datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "session_id": session_id,
        "kind": kind,
        # jti keeps two tokens minted in the same second for the same
        # session distinct, so a rotated refresh token never equals its predecessor.
        "jti": uuid.uuid4().hex,
        "exp": int((issued + expires_in).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(secret: str, token: str, now: datetime | None = None) -> Claims:
    """Verify signature and expiry and return the token's claims.

    Raises:
        InvalidTokenError: bad signature, malformed token, or missing claims.
        TokenExpiredError: exp is in the past.
    """
    if not isinstance(token, str) or not token:
        raise InvalidTokenError("empty token")
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"verify_exp": False})
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    try:
        user_id = str(payload["user_id"])
        session_id = str(payload["session_id"])
        kind = payload["kind"]
        exp = int(payload["exp"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("missing or malformed claims") from exc
    if kind not in _KINDS:
        raise InvalidTokenError(f"unknown token kind {kind!r}")

    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
    current = now or datetime.now(timezone.utc)
    if expires_at < current:
        raise TokenExpiredError("token expired")

    return Claims(user_id=user_id, session_id=session_id, expires_at=expires_at, kind=kind)
