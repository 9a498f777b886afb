"""Shared FastAPI dependencies: services from app.state and the bearer-token gate."""

import logging

from fastapi import Depends, Request

from fail2rest.core.exceptions import AuthenticationError, AuthorizationError
from fail2rest.services.auth import AuthService, InvalidTokenError, TokenClaims, TokenExpiredError
from fail2rest.services.fail2ban import Fail2banClient

logger = logging.getLogger(__name__)


def get_auth_service(request: Request) -> AuthService:
    """Dependency to get the auth service built at startup."""
    return request.app.state.auth_service


def get_fail2ban_client(request: Request) -> Fail2banClient:
    """Dependency to get the fail2ban-client adapter built at startup."""
    return request.app.state.fail2ban_client


def _extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        raise AuthenticationError("Authorization header required")

    scheme, _, token = auth_header.partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token:
        raise AuthenticationError("Invalid authorization header format")
    return token


async def require_token(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    """Gate for protected routes.

    401 for a missing/malformed header or an invalid/expired token,
    403 for a valid token that is not marked authorized.
    """
    token = _extract_bearer_token(request)

    try:
        claims = auth_service.validate_token(token)
    except TokenExpiredError as e:
        logger.debug(f"Expired token for: {request.method} {request.url.path}")
        raise AuthenticationError("Invalid or expired token") from e
    except InvalidTokenError as e:
        logger.warning(f"Invalid token for: {request.method} {request.url.path} - {e}")
        raise AuthenticationError("Invalid or expired token") from e

    if not claims.authorized:
        logger.warning(f"Unauthorized token for: {request.method} {request.url.path}")
        raise AuthorizationError("Not authorized")

    request.state.token_claims = claims
    return claims
