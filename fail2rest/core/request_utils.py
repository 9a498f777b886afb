"""Request utility functions for handling common request operations."""

import ipaddress
import logging

from starlette.requests import HTTPConnection

logger = logging.getLogger(__name__)

LOOPBACK_HOSTS = ("127.0.0.1", "::1", "localhost")


def is_valid_ip(ip_str: str) -> bool:
    """Check if a string is a valid IPv4 or IPv6 address."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_ip(request: HTTPConnection) -> str:
    """Get the client IP address from a request.

    X-Real-IP is only honoured when the direct peer is a local reverse proxy;
    X-Forwarded-For is never trusted as it can be spoofed to dodge the login
    rate limit.

    Args:
        request: The Starlette/FastAPI request (or any HTTP connection)

    Returns:
        Client IP address, or "unknown" if the server did not report a peer
    """
    if request.client and request.client.host in LOOPBACK_HOSTS:
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            ip = real_ip.strip()
            if is_valid_ip(ip):
                return ip
            else:
                logger.warning(f"Invalid X-Real-IP: {real_ip}")

    if request.client:
        return request.client.host

    return "unknown"
