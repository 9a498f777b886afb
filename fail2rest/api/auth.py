"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, Request

from fail2rest.api.deps import get_auth_service
from fail2rest.core.exceptions import (
    AuthenticationError,
    AuthNotConfiguredError,
    ValidationError,
)
from fail2rest.core.request_utils import get_client_ip
from fail2rest.schemas.auth import LoginData, LoginRequest
from fail2rest.schemas.common import APIResponse
from fail2rest.services.auth import ApiKeyCredential, AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=APIResponse[LoginData],
    response_model_exclude_none=True,
)
async def login(
    body: LoginRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> APIResponse[LoginData]:
    """Exchange an API key or username/password for a bearer token.

    Rate limited per client address by RateLimitMiddleware. Refuses to issue
    anything while no credentials are configured.
    """
    if not auth_service.has_auth_configured():
        logger.error("Login attempted but no API keys or users are configured")
        raise AuthNotConfiguredError(
            "Authentication not configured. Please configure API keys or users."
        )

    credential = body.to_credential()
    if credential is None:
        raise ValidationError("Either 'api_key' or 'username' and 'password' must be provided")

    client_ip = get_client_ip(request)
    if not auth_service.authenticate(credential):
        if isinstance(credential, ApiKeyCredential):
            logger.warning(f"Failed API key login from {client_ip}")
            raise AuthenticationError("Invalid API key")
        logger.warning(f"Failed password login from {client_ip}")
        raise AuthenticationError("Invalid username or password")

    token, expires_at = auth_service.generate_token()
    logger.info(f"Issued token to {client_ip}, expires {expires_at.isoformat()}")
    return APIResponse(data=LoginData(token=token, expires_at=expires_at))
