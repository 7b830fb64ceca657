"""Unit tests for core/errors.py -- the exception -> (message, status) lookup."""

from __future__ import annotations

import pytest

from core.errors import (
    AppError,
    BadRequestError,
    GoneError,
    InvalidTokenError,
    NotFoundError,
    PreconditionFailedError,
    ServiceUnavailableError,
    TokenExpiredError,
    UnauthorizedError,
    ValidationError,
    error_code,
    error_to_status,
)


@pytest.mark.parametrize(
    "exc, status",
    [
        (ValidationError("Email is not valid"), 400),
        (BadRequestError("Invalid token"), 400),
        (UnauthorizedError(), 401),
        (InvalidTokenError("bad signature"), 401),
        (TokenExpiredError("token expired"), 401),
        (NotFoundError("Session not found"), 404),
        (GoneError(), 410),
        (PreconditionFailedError(), 412),
        (ServiceUnavailableError(), 503),
    ],
)
def test_domain_errors_carry_their_status(exc, status):
    _, actual = error_to_status(exc)
    assert actual == status


def test_message_passes_through():
    assert error_to_status(NotFoundError("Code not found")) == ("Code not found", 404)
    assert error_to_status(GoneError()) == ("Code is gone", 410)
    assert error_to_status(PreconditionFailedError()) == ("Incorrect code", 412)


def test_token_errors_hide_the_reason():
    exc = InvalidTokenError("Signature verification failed.")
    assert error_to_status(exc) == ("Invalid token", 401)
    assert exc.detail == "Signature verification failed."


def test_unknown_exception_is_generic_500():
    message, status = error_to_status(KeyError("users.password_hash"))
    assert status == 500
    assert "password_hash" not in message


def test_error_codes():
    assert error_code(GoneError()) == "gone"
    assert error_code(TokenExpiredError()) == "token_expired"
    assert error_code(RuntimeError("boom")) == AppError.code
