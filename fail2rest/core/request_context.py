"""Request-scoped context shared between middleware, logging and services."""

import asyncio
from contextvars import ContextVar

# Correlation ID of the request being served (None outside a request)
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Absolute deadline on the running loop's clock (loop.time()) for the request
request_deadline_var: ContextVar[float | None] = ContextVar("request_deadline", default=None)


def get_request_id() -> str | None:
    return request_id_var.get()


def remaining_request_time() -> float | None:
    """Seconds left before the current request deadline, or None if unbounded."""
    deadline = request_deadline_var.get()
    if deadline is None:
        return None
    return max(0.0, deadline - asyncio.get_running_loop().time())
