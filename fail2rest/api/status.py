"""Server status endpoint."""

import time

from fastapi import APIRouter, Depends

from fail2rest.api.deps import get_fail2ban_client
from fail2rest.api.errors import fail2ban_errors
from fail2rest.schemas.common import APIResponse
from fail2rest.schemas.jail import StatusData
from fail2rest.services.fail2ban import Fail2banClient

router = APIRouter(tags=["status"])


@router.get("/status", response_model=APIResponse[StatusData], response_model_exclude_none=True)
async def get_status(
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[StatusData]:
    """Overall fail2ban server status: its header fields plus the jail list."""
    with fail2ban_errors("get status"):
        server_status = await client.status()
    return APIResponse(
        data=StatusData(status=server_status.to_dict(), timestamp=int(time.time()))
    )
