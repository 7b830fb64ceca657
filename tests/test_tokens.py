"""Unit tests for auth/tokens.py -- JWT encode/decode.

Covers:
- claims round-trip (user_id, session_id, kind, exp)
- expiry decided by the supplied clock alone, whatever the wall clock says
- tampered payload, wrong secret, alg=none, missing claims, unknown kind
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import ACCESS, ALGORITHM, REFRESH, decode_token, encode_token
from core.errors import InvalidTokenError, TokenExpiredError, UnauthorizedError

SECRET = "k" * 64


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TestRoundTrip:
    def test_claims_survive(self) -> None:
        now = _now()
        token = encode_token(SECRET, "user-1", "session-1", ACCESS, timedelta(minutes=15), now=now)
        claims = decode_token(SECRET, token, now=now)
        assert claims.user_id == "user-1"
        assert claims.session_id == "session-1"
        assert claims.kind == ACCESS
        assert claims.expires_at == datetime.fromtimestamp(int((now + timedelta(minutes=15)).timestamp()), tz=timezone.utc)

    def test_same_inputs_give_distinct_tokens(self) -> None:
        now = _now()
        a = encode_token(SECRET, "user-1", "session-1", REFRESH, timedelta(days=7), now=now)
        b = encode_token(SECRET, "user-1", "session-1", REFRESH, timedelta(days=7), now=now)
        assert a != b

    def test_unknown_kind_refused_at_encode(self) -> None:
        with pytest.raises(ValueError):
            encode_token(SECRET, "user-1", "session-1", "id", timedelta(minutes=1))


class TestExpiry:
    def test_expired_by_real_time(self) -> None:
        past = _now() - timedelta(hours=1)
        token = encode_token(SECRET, "user-1", "session-1", ACCESS, timedelta(minutes=15), now=past)
        with pytest.raises(TokenExpiredError):
            decode_token(SECRET, token)

    def test_expired_by_supplied_clock(self) -> None:
        now = _now()
        token = encode_token(SECRET, "user-1", "session-1", ACCESS, timedelta(minutes=15), now=now)
        with pytest.raises(TokenExpiredError):
            decode_token(SECRET, token, now=now + timedelta(minutes=16))

    def test_past_clock_accepts_token_the_wall_clock_calls_expired(self) -> None:
        yesterday = _now() - timedelta(days=1)
        token = encode_token(SECRET, "user-1", "session-1", ACCESS, timedelta(minutes=15), now=yesterday)
        claims = decode_token(SECRET, token, now=yesterday + timedelta(minutes=14))
        assert claims.user_id == "user-1"
        with pytest.raises(TokenExpiredError):
            decode_token(SECRET, token, now=yesterday + timedelta(minutes=16))

    def test_expired_is_unauthorized(self) -> None:
        assert issubclass(TokenExpiredError, UnauthorizedError)


class TestRejection:
    def test_wrong_secret(self) -> None:
        token = encode_token(SECRET, "user-1", "session-1", ACCESS, timedelta(minutes=15))
        with pytest.raises(InvalidTokenError):
            decode_token("x" * 64, token)

    def test_tampered_payload(self) -> None:
        token = encode_token(SECRET, "user-1", "session-1", ACCESS, timedelta(minutes=15))
        header, payload, signature = token.split(".")
        forged = jwt.encode(
            {"user_id": "admin", "session_id": "session-1", "kind": ACCESS, "exp": 4102444800},
            "attacker-key",
            algorithm=ALGORITHM,
        )
        spliced = ".".join([header, forged.split(".")[1], signature])
        with pytest.raises(InvalidTokenError):
            decode_token(SECRET, spliced)

    def test_alg_none_rejected(self) -> None:
        unsigned = jwt.encode({"user_id": "u", "session_id": "s", "kind": ACCESS}, "", algorithm="HS256")
        header = "eyJhbGciOiJub25lIiwidHlwIjoiSldUIn0"
        token = ".".join([header, unsigned.split(".")[1], ""])
        with pytest.raises(InvalidTokenError):
            decode_token(SECRET, token)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed(self, token) -> None:
        with pytest.raises(InvalidTokenError):
            decode_token(SECRET, token)

    def test_missing_session_claim(self) -> None:
        exp = int((_now() + timedelta(minutes=5)).timestamp())
        token = jwt.encode({"user_id": "user-1", "kind": ACCESS, "exp": exp}, SECRET, algorithm=ALGORITHM)
        with pytest.raises(InvalidTokenError):
            decode_token(SECRET, token)

    def test_unknown_kind_rejected(self) -> None:
        exp = int((_now() + timedelta(minutes=5)).timestamp())
        token = jwt.encode(
            {"user_id": "user-1", "session_id": "s", "kind": "admin", "exp": exp}, SECRET, algorithm=ALGORITHM
        )
        with pytest.raises(InvalidTokenError):
            decode_token(SECRET, token)

    def test_public_message_is_generic(self) -> None:
        with pytest.raises(InvalidTokenError) as info:
            decode_token(SECRET, "garbage")
        assert info.value.message == "Invalid token"
