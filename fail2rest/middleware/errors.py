"""Catch-all for unexpected errors inside the request pipeline."""

import logging

from fastapi import status
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fail2rest.core.exceptions import error_response

logger = logging.getLogger(__name__)


class UnhandledErrorMiddleware:
    """Render any unexpected exception as the 500 envelope.

    Starlette runs the app-level Exception handler in ServerErrorMiddleware,
    outside every user middleware. This stage sits inside the security
    headers and request ID stages so the 500 still carries their headers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

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

        try:
            await self.app(scope, receive, tracking_send)
        except Exception:
            logger.exception(f"Unhandled error on {scope.get('method')} {scope.get('path')}")
            if response_started:
                raise
            response = error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
            )
            await response(scope, receive, send)
