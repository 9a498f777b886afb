"""Request pipeline middleware for fail2rest."""

from fail2rest.middleware.body_limit import BodySizeLimitMiddleware
from fail2rest.middleware.errors import UnhandledErrorMiddleware
from fail2rest.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from fail2rest.middleware.request_id import RequestIDMiddleware
from fail2rest.middleware.request_logging import RequestLoggingMiddleware
from fail2rest.middleware.security_headers import SecurityHeadersMiddleware
from fail2rest.middleware.timeout import TimeoutMiddleware

__all__ = [
    "BodySizeLimitMiddleware",
    "RateLimiter",
    "RateLimitMiddleware",
    "RequestIDMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "TimeoutMiddleware",
    "UnhandledErrorMiddleware",
]
