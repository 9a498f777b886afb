"""Health check endpoint.

Unauthenticated and mounted outside the API prefix so load balancers and
process supervisors can probe it.
"""

import time

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from fail2rest.api.deps import get_fail2ban_client
from fail2rest.services.fail2ban import Fail2banClient

SERVICE_NAME = "fail2ban-rest"

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    time: int


@router.get("/health", response_model=HealthResponse)
async def health_check(
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> HealthResponse:
    """
    Health check endpoint.

    Always 200; status is "degraded" when fail2ban-client cannot report
    server status.
    """
    reachable = await client.ping()
    return HealthResponse(
        status="ok" if reachable else "degraded",
        service=SERVICE_NAME,
        time=int(time.time()),
    )
