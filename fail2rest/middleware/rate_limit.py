"""Rate limiting middleware for brute-force protection of the login route."""

import logging
import math
import time
from dataclasses import dataclass

from limits import (
    RateLimitItem,
    RateLimitItemPerDay,
    RateLimitItemPerHour,
    RateLimitItemPerMinute,
    RateLimitItemPerSecond,
)
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fail2rest.core.config import RATE_SPEC_PATTERN
from fail2rest.core.exceptions import RateLimitedError, error_response
from fail2rest.core.request_utils import get_client_ip

logger = logging.getLogger(__name__)

_PERIODS: dict[str, type[RateLimitItem]] = {
    "S": RateLimitItemPerSecond,
    "M": RateLimitItemPerMinute,
    "H": RateLimitItemPerHour,
    "D": RateLimitItemPerDay,
}


def parse_rate_limit(spec: str) -> RateLimitItem:
    """Parse a "<count>-<period>" spec such as "10-M" (10 per minute)."""
    match = RATE_SPEC_PATTERN.match(spec.strip().upper())
    if not match:
        raise ValueError(f"Invalid rate limit spec: {spec!r}")
    return _PERIODS[match.group("period")](int(match.group("count")))


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset: int  # Unix time at which the window resets

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }


class RateLimiter:
    """Fixed-window counters keyed by client address.

    Counters live in an in-process `limits` MemoryStorage, which locks per
    key and expires windows on its own. Nothing is persisted.
    """

    def __init__(self, rate: str) -> None:
        self.rate = parse_rate_limit(rate)
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def check(self, key: str) -> RateLimitResult:
        """Consume one request for key and report the window state."""
        allowed = self._strategy.hit(self.rate, key)
        reset_time, remaining = self._strategy.get_window_stats(self.rate, key)
        return RateLimitResult(
            allowed=allowed,
            limit=self.rate.amount,
            remaining=remaining,
            reset=math.ceil(reset_time),
        )

    def reset(self) -> None:
        """Forget all counters."""
        self._storage.reset()


class RateLimitMiddleware:
    """Apply a RateLimiter to selected paths.

    Every response on a limited path carries X-RateLimit-* headers; an
    exhausted window yields 429 with Retry-After. Pure ASGI so the request
    body stream passes through untouched.
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        paths: list[str] | None = None,
    ) -> None:
        self.app = app
        self.paths = paths or []
        self.rate_limiter = limiter

    def _is_limited(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self.paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._is_limited(scope["path"]):
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        client_ip = get_client_ip(HTTPConnection(scope))
        result = self.rate_limiter.check(client_ip)

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {client_ip} on {path}")
            retry_after = max(1, result.reset - int(time.time()))
            response = error_response(
                RateLimitedError.status_code,
                "Rate limit exceeded",
                headers={**result.headers, "Retry-After": str(retry_after)},
            )
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for key, value in result.headers.items():
                    headers[key] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)
