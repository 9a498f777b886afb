"""Correlation ID middleware."""

import secrets
from datetime import UTC, datetime

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from fail2rest.core.request_context import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


def generate_request_id() -> str:
    """Timestamp plus 8 random bytes, e.g. 20260101120000-9f86d081884c7d65."""
    return f"{datetime.now(UTC).strftime('%Y%m%d%H%M%S')}-{secrets.token_hex(8)}"


def _is_acceptable(request_id: str | None) -> bool:
    return (
        bool(request_id)
        and len(request_id) <= MAX_REQUEST_ID_LENGTH
        and request_id.isprintable()
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one.

    The ID is exposed as request.state.request_id, through a context variable
    for log records, and echoed on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not _is_acceptable(request_id):
            request_id = generate_request_id()

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
