"""Request timeout middleware.

The downstream app runs under asyncio.wait_for. When the deadline passes the
handler task is cancelled, which reaches any fail2ban-client call it is
awaiting; the adapter kills and reaps its child before the cancellation
finishes. The absolute deadline is also published through a context
variable so adapter calls can bound their own waits by it.
"""

import asyncio
import logging

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fail2rest.core.exceptions import TimedOutError, error_response
from fail2rest.core.request_context import request_deadline_var

logger = logging.getLogger(__name__)


class TimeoutMiddleware:
    """Bound the wall-clock time of every HTTP request."""

    def __init__(self, app: ASGIApp, timeout_seconds: float = 30.0) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        loop = asyncio.get_running_loop()
        token = request_deadline_var.set(loop.time() + self.timeout_seconds)
        try:
            await asyncio.wait_for(
                self.app(scope, receive, tracking_send),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Request timed out after {self.timeout_seconds}s: "
                f"{scope.get('method')} {scope.get('path')}"
            )
            if response_started:
                # Headers are already on the wire; all we can do is stop
                return
            response = error_response(TimedOutError.status_code, "Request timeout")
            await response(scope, receive, send)
        finally:
            request_deadline_var.reset(token)
