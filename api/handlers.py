"""
api/handlers.py -- Exception handlers shared by the public and internal apps.

All handlers return the same ErrorResponse envelope so clients can parse
errors uniformly without inspecting status codes to choose a schema.

AppError subclasses go through core.errors.error_to_status(), the single
exception -> (message, status) lookup. Anything else is an unexpected
server error: the traceback goes to the log, the client gets a generic
message.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse
from core.errors import AppError, UnauthorizedError, error_code, error_to_status

logger = logging.getLogger("vaultauth.api")


def _envelope(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map a domain error to its status via error_to_status()."""
    message, status_code = error_to_status(exc)
    if isinstance(exc, UnauthorizedError):
        # Reason stays server-side; the client sees only "Invalid token".
        logger.info("Unauthorized on %s %s: %s", request.method, request.url.path, exc.detail)
        response = _envelope(status_code, "unauthorized", message)
        response.headers["WWW-Authenticate"] = "Bearer"
        return response
    return _envelope(status_code, error_code(exc), message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or params fail validation."""
    return _envelope(422, "validation_error", "Request validation failed.", str(exc.errors()))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 routes, 405, ...)."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _envelope(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    message, status_code = error_to_status(exc)
    return _envelope(status_code, error_code(exc), message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
