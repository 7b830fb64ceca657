"""
auth/sessions.py -- Session lifecycle and bearer-token parsing.

State machine per session row:

    (none) --create_session--> Active --update_session--> Active
                                  |                          |
                                  +--delete_session[_by_token]--> Deleted (terminal)

Rotation policy: update_session() only accepts the refresh token that is
currently stored on the session. Each refresh overwrites the stored token,
so a superseded refresh token -- even one that is still inside its expiry
window -- can no longer mint new pairs. Signature and expiry alone are not
enough.

parse_token() is the single accept/reject primitive. The local bearer
dependency (auth/dependencies.py) and the remote verification endpoint
(api/internal.py) both call it, so for the same token, secret and clock
they always agree.

Decorations (client description, location) are injected callables. They are
computed fresh on every create/update, never retried, and may not raise.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import hmac
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.client_info import DEFAULT_CLIENT_INFO, describe_client
from auth.geo import DEFAULT_LOCATION, no_location
from auth.models import Claims, Session, TokenPair
from auth.store import SessionStore
from auth.tokens import ACCESS, REFRESH, decode_token, encode_token
from core.errors import BadRequestError, InvalidTokenError, NotFoundError, UnauthorizedError

logger = logging.getLogger("vaultauth.sessions")

DEFAULT_ACCESS_EXPIRE_SECONDS = 15 * 60
DEFAULT_REFRESH_EXPIRE_SECONDS = 168 * 60 * 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionService:
    def __init__(
        self,
        store: SessionStore,
        secret_key: str,
        access_expire_seconds: int = DEFAULT_ACCESS_EXPIRE_SECONDS,
        refresh_expire_seconds: int = DEFAULT_REFRESH_EXPIRE_SECONDS,
        locate: Callable[[str], str] = no_location,
        describe: Callable[[str | None], str] = describe_client,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self._secret_key = secret_key
        self.access_expire = timedelta(seconds=access_expire_seconds)
        self.refresh_expire = timedelta(seconds=refresh_expire_seconds)
        self.locate = locate
        self.describe = describe
        self.clock = clock

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def create_session(self, user_id: str, user_agent: str | None, ip: str) -> TokenPair:
        """Start a new session for user_id and return its first token pair."""
        session_id = str(uuid.uuid4())
        tokens = self._mint(user_id, session_id)
        session = Session(
            id=session_id,
            token=tokens.refresh_token,
            user_id=user_id,
            ip=ip,
            location=self._location(ip),
            client_info=self._client_info(user_agent),
            last_login=self.clock(),
        )
        self.store.insert_session(session)
        logger.info("Created session %s for user %s", session_id, user_id)
        return tokens

    def update_session(self, refresh_token: str, user_agent: str | None, ip: str) -> TokenPair:
        """Rotate a session's refresh token and return a fresh pair.

        Raises:
            BadRequestError: token unparsable, expired, not a refresh token,
                             or no longer the one stored on the session.
            NotFoundError:   the session was deleted.
        """
        try:
            claims = self.parse_token(refresh_token, kind=REFRESH)
        except UnauthorizedError as exc:
            logger.info("Refresh rejected: %s", exc.detail)
            raise BadRequestError("Invalid token") from exc

        session = self.store.get_session(claims.session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not hmac.compare_digest(session.token, refresh_token):
            logger.warning("Superseded refresh token presented for session %s", session.id)
            raise BadRequestError("Invalid token")

        tokens = self._mint(session.user_id, session.id)
        session.token = tokens.refresh_token
        session.ip = ip
        session.location = self._location(ip)
        session.client_info = self._client_info(user_agent)
        session.last_login = self.clock()
        self.store.update_session(session)
        return tokens

    def get_sessions_list(self, user_id: str) -> list[Session]:
        return self.store.list_sessions(user_id)

    def delete_session(self, session_id: str, user_id: str | None = None) -> None:
        """Delete a session. With user_id, only if that user owns it.

        Raises NotFoundError if nothing was deleted, so a second delete of
        the same id fails rather than silently succeeding.
        """
        if not self.store.delete_session(session_id, user_id=user_id):
            raise NotFoundError("Session not found")
        logger.info("Deleted session %s", session_id)

    def delete_session_by_token(self, token: str) -> None:
        """Log out the session a refresh token belongs to. Parse errors propagate."""
        claims = self.parse_token(token, kind=REFRESH)
        self.delete_session(claims.session_id)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def parse_token(self, token: str, kind: str | None = None) -> Claims:
        """Verify a token and return its claims.

        Raises InvalidTokenError / TokenExpiredError (both UnauthorizedError).
        When kind is given, a token of the other kind is rejected as invalid.
        """
        claims = decode_token(self._secret_key, token, now=self.clock())
        if kind is not None and claims.kind != kind:
            raise InvalidTokenError(f"expected {kind} token, got {claims.kind}")
        return claims

    def authenticate(self, token: str) -> str:
        """Return the user id behind a bearer access token."""
        return self.parse_token(token, kind=ACCESS).user_id

    def _mint(self, user_id: str, session_id: str) -> TokenPair:
        now = self.clock()
        return TokenPair(
            access_token=encode_token(self._secret_key, user_id, session_id, ACCESS, self.access_expire, now=now),
            refresh_token=encode_token(self._secret_key, user_id, session_id, REFRESH, self.refresh_expire, now=now),
        )

    # ------------------------------------------------------------------
    # Best-effort decorations
    # ------------------------------------------------------------------

    def _client_info(self, user_agent: str | None) -> str:
        try:
            return self.describe(user_agent)
        except Exception:
            logger.debug("Client description failed", exc_info=True)
            return DEFAULT_CLIENT_INFO

    def _location(self, ip: str) -> str:
        try:
            return self.locate(ip)
        except Exception:
            logger.debug("Location lookup failed", exc_info=True)
            return DEFAULT_LOCATION
