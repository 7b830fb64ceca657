"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
CodeStore / UserStore / SessionStore are the capabilities the services
depend on (typing.Protocol, so tests can hand in an in-memory fake).
AuthStore is the single relational implementation of all three; the
_row_to_* functions are the mappers. Service and route code never touches
SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  delete_session() takes an optional user_id so "delete one of my sessions"
  is scoped to the owner inside the WHERE clause [IDOR guard].

Concurrency:
  No locks and no version columns. Updates are last-writer-wins per row;
  two concurrent refreshes of one session both succeed and the later write
  decides which refresh token stays valid.

Timestamps are stored as UTC ISO 8601 strings with fixed microsecond
precision so that lexical order in SQL matches chronological order.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from auth.models import Session, User, VerificationCode
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
    Column("is_super", Boolean, nullable=False, server_default="0"),
)

_email_codes = Table(
    "email_codes",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False),
    Column("code", Integer, nullable=False),
    Column("expires_at", String(32), nullable=False, index=True),
    Column("attempts", Integer, nullable=False, server_default="0"),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("token", Text, nullable=False),  # current refresh token, overwritten on rotation
    Column("user_id", String(36), nullable=False, index=True),
    Column("ip", String(45), nullable=False),  # 45 = longest textual IPv6
    Column("location", String(255), nullable=False),
    Column("client_info", String(255), nullable=False),
    Column("last_login", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class CodeStore(Protocol):
    def insert_code(self, code: VerificationCode) -> None: ...

    def update_code(self, code: VerificationCode) -> None: ...

    def delete_code(self, code_id: str) -> bool: ...

    def get_code(self, code_id: str) -> VerificationCode | None: ...

    def purge_expired_codes(self, now: datetime) -> int: ...


class UserStore(Protocol):
    def insert_user(self, user: User) -> None: ...

    def get_user_by_email(self, email: str) -> User | None: ...

    def get_user_by_id(self, user_id: str) -> User | None: ...


class SessionStore(Protocol):
    def insert_session(self, session: Session) -> None: ...

    def update_session(self, session: Session) -> None: ...

    def delete_session(self, session_id: str, user_id: str | None = None) -> bool: ...

    def get_session(self, session_id: str) -> Session | None: ...

    def list_sessions(self, user_id: str) -> list[Session]: ...


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """Relational implementation of CodeStore, UserStore and SessionStore.

    Usage:
        store = AuthStore("sqlite:///:memory:")
        store.insert_user(User(id=str(uuid4()), email="a@b.io", created_at=now))
        user = store.get_user_by_email("a@b.io")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # One-time codes
    # ------------------------------------------------------------------

    def insert_code(self, code: VerificationCode) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _email_codes.insert().values(
                    id=code.id,
                    email=code.email,
                    code=code.code,
                    expires_at=_to_iso(code.expires_at),
                    attempts=code.attempts,
                )
            )
            conn.commit()

    def update_code(self, code: VerificationCode) -> None:
        """Overwrite every mutable column of an existing code row."""
        with self.engine.connect() as conn:
            conn.execute(
                _email_codes.update()
                .where(_email_codes.c.id == code.id)
                .values(
                    email=code.email,
                    code=code.code,
                    expires_at=_to_iso(code.expires_at),
                    attempts=code.attempts,
                )
            )
            conn.commit()

    def delete_code(self, code_id: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_email_codes.delete().where(_email_codes.c.id == code_id))
            conn.commit()
        return result.rowcount > 0

    def get_code(self, code_id: str) -> VerificationCode | None:
        with self.engine.connect() as conn:
            row = conn.execute(_email_codes.select().where(_email_codes.c.id == code_id)).fetchone()
        return _row_to_code(row) if row is not None else None

    def purge_expired_codes(self, now: datetime) -> int:
        """Delete codes whose expiry is before now. Returns rows removed.

        Codes that are requested but never submitted would otherwise stay in
        the table forever; verify_code() only cleans up codes it is asked about.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_email_codes.delete().where(_email_codes.c.expires_at < _to_iso(now)))
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def insert_user(self, user: User) -> None:
        """Insert a new user.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers treat that as a concurrent request having created the record
        first [M1].
        """
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user.id,
                    email=user.email,
                    created_at=_to_iso(user.created_at),
                    is_super=user.is_super,
                )
            )
            conn.commit()

    def get_user_by_email(self, email: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_id(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def insert_session(self, session: Session) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    id=session.id,
                    token=session.token,
                    user_id=session.user_id,
                    ip=session.ip,
                    location=session.location,
                    client_info=session.client_info,
                    last_login=_to_iso(session.last_login),
                )
            )
            conn.commit()

    def update_session(self, session: Session) -> None:
        """Overwrite the session row. Last writer wins; no version check."""
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.update()
                .where(_sessions.c.id == session.id)
                .values(
                    token=session.token,
                    user_id=session.user_id,
                    ip=session.ip,
                    location=session.location,
                    client_info=session.client_info,
                    last_login=_to_iso(session.last_login),
                )
            )
            conn.commit()

    def delete_session(self, session_id: str, user_id: str | None = None) -> bool:
        """Delete a session. Returns True if a row was removed.

        When user_id is given, both conditions must match -- a user cannot
        revoke someone else's session even if they know its id.
        """
        condition = _sessions.c.id == session_id
        if user_id is not None:
            condition = condition & (_sessions.c.user_id == user_id)
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(condition))
            conn.commit()
        return result.rowcount > 0

    def get_session(self, session_id: str) -> Session | None:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.id == session_id)).fetchone()
        return _row_to_session(row) if row is not None else None

    def list_sessions(self, user_id: str) -> list[Session]:
        """Return all sessions owned by user_id, most recently active first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _sessions.select().where(_sessions.c.user_id == user_id).order_by(_sessions.c.last_login.desc())
            ).fetchall()
        return [_row_to_session(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_code(row) -> VerificationCode:
    return VerificationCode(
        id=row.id,
        email=row.email,
        code=row.code,
        expires_at=_from_iso(row.expires_at),
        attempts=row.attempts,
    )


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        created_at=_from_iso(row.created_at),
        is_super=bool(row.is_super),
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        token=row.token,
        user_id=row.user_id,
        ip=row.ip,
        location=row.location,
        client_info=row.client_info,
        last_login=_from_iso(row.last_login),
    )
