"""Request body size limit.

Pure ASGI so that the receive channel itself can be wrapped: the declared
Content-Length is checked up front, and the bytes actually streamed are
counted as well, in case the header is missing or lies. Once the stream
has overflowed the client always gets the 413 envelope, however the inner
stages reacted to the error.
"""

import logging

from starlette.datastructures import Headers
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fail2rest.core.exceptions import PayloadTooLargeError, error_response

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_SIZE = 1024 * 1024  # 1 MiB


class BodySizeLimitMiddleware:
    """Reject request bodies larger than max_body_size bytes with 413."""

    def __init__(self, app: ASGIApp, max_body_size: int = DEFAULT_MAX_BODY_SIZE) -> None:
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                declared = None
            if declared is None or declared > self.max_body_size:
                logger.warning(
                    f"Rejected body with Content-Length {content_length} "
                    f"(limit {self.max_body_size}) for {scope.get('method')} {scope.get('path')}"
                )
                await _too_large()(scope, receive, send)
                return

        received = 0
        limit = self.max_body_size
        overflowed = False
        response_started = False
        replaced = False

        async def limited_receive() -> Message:
            nonlocal received, overflowed
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    if not overflowed:
                        logger.warning(
                            f"Streamed body exceeded {limit} bytes for "
                            f"{scope.get('method')} {scope.get('path')}"
                        )
                    overflowed = True
                    raise PayloadTooLargeError()
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started, replaced
            if replaced:
                return
            if message["type"] == "http.response.start":
                response_started = True
                if overflowed:
                    # Inner stages may have turned the overflow into some other error
                    replaced = True
                    await _too_large()(scope, receive, send)
                    return
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except Exception:
            if not overflowed or response_started:
                raise
            await _too_large()(scope, receive, send)


def _too_large() -> Response:
    return error_response(PayloadTooLargeError().status_code, "Request body too large")
