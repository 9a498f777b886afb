"""Access logging middleware."""

import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from fail2rest.core.request_utils import get_client_ip

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path+query, status, latency, client and correlation ID."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        request_id = getattr(request.state, "request_id", "-")
        client_ip = get_client_ip(request)

        try:
            response = await call_next(request)
        except Exception:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                f"[{request_id}] {request.method} {path} 500 {latency_ms:.1f}ms {client_ip}"
            )
            raise

        latency_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"[{request_id}] {request.method} {path} {response.status_code} "
            f"{latency_ms:.1f}ms {client_ip}"
        )
        return response
