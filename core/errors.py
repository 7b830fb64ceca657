"""
core/errors.py -- Error taxonomy for the auth service.

Every domain failure is an AppError subclass carrying the HTTP status it is
meant to surface as. Services raise these; the boundary (exception handlers
in api/main.py and api/internal.py) turns any exception into a
(message, status) pair through error_to_status() -- one lookup, no
per-route mapping.

Token failures (InvalidTokenError, TokenExpiredError) always expose the same
public message so a caller cannot tell which part of parsing failed. The
specific reason is kept on .detail for server-side logs only.

Layer rule: core/ is the kernel. No imports from api/, auth/, or notify/.
"""

from __future__ import annotations

__all__ = [
    "AppError",
    "BadRequestError",
    "GoneError",
    "InvalidTokenError",
    "NotFoundError",
    "PreconditionFailedError",
    "ServiceUnavailableError",
    "TokenExpiredError",
    "UnauthorizedError",
    "ValidationError",
    "error_code",
    "error_to_status",
]

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred."


class AppError(Exception):
    """Base class for errors that know their own HTTP status."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = INTERNAL_ERROR_MESSAGE

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input, e.g. an email address that fails the syntax check."""

    status_code = 400
    code = "validation_error"
    default_message = "Request is not valid."


class BadRequestError(AppError):
    """A well-formed request that cannot be honoured (e.g. unusable refresh token)."""

    status_code = 400
    code = "bad_request"
    default_message = "Bad request."


class UnauthorizedError(AppError):
    """Token verification failed. The public message is fixed on purpose."""

    status_code = 401
    code = "unauthorized"
    default_message = "Invalid token"

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        # The caller-supplied message becomes the log detail; the public
        # message never varies.
        super().__init__(self.default_message, detail=detail or message)


class InvalidTokenError(UnauthorizedError):
    code = "invalid_token"


class TokenExpiredError(UnauthorizedError):
    code = "token_expired"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class GoneError(AppError):
    """A one-time code that expired or ran out of attempts. It has been deleted."""

    status_code = 410
    code = "gone"
    default_message = "Code is gone"


class PreconditionFailedError(AppError):
    """Wrong one-time code; attempts remain and the code is still usable."""

    status_code = 412
    code = "incorrect_code"
    default_message = "Incorrect code"


class ServiceUnavailableError(AppError):
    """An upstream service (e.g. the remote verification endpoint) could not be reached."""

    status_code = 503
    code = "service_unavailable"
    default_message = "Upstream service unavailable."


def error_to_status(exc: BaseException) -> tuple[str, int]:
    """Map any exception to the (message, status) pair the boundary returns.

    Domain errors carry their intended status. Anything unrecognized maps to
    500 with a generic message; the raw exception text is left to the server
    log and never reaches the client.
    """
    if isinstance(exc, AppError):
        return exc.message, exc.status_code
    return INTERNAL_ERROR_MESSAGE, 500


def error_code(exc: BaseException) -> str:
    """Return the machine-readable code for the error envelope."""
    if isinstance(exc, AppError):
        return exc.code
    return AppError.code
