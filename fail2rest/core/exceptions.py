"""API error taxonomy and the JSON envelope exception handlers."""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors rendered as an API envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class ValidationError(APIError):
    """Bad jail name, IP address or request body."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(APIError):
    """Missing/malformed credentials or an invalid token."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(APIError):
    """Valid token that does not grant access."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND


class RateLimitedError(APIError):
    """Login attempts from one client exceeded the configured rate."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class TimedOutError(APIError):
    status_code = status.HTTP_408_REQUEST_TIMEOUT


class PayloadTooLargeError(StarletteHTTPException):
    """Raised from inside the request body stream.

    FastAPI turns arbitrary errors raised while reading the body into a 400,
    but re-raises HTTPException untouched, hence the different base class.
    """

    def __init__(self, detail: str = "Request body too large"):
        super().__init__(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=detail)


class UpstreamError(APIError):
    """fail2ban-client failed or produced output we cannot use."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ElevationRequiredError(UpstreamError):
    """fail2ban-client needs root; the message carries remediation steps."""


class AuthNotConfiguredError(APIError):
    """Login attempted while no API keys or users are configured."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_envelope(error: str) -> dict[str, Any]:
    return {"success": False, "error": error}


def error_response(
    status_code: int, error: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_envelope(error), headers=headers)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        detail = "invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request: {detail}")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as {success: false, error: ...}."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
