"""Statistics endpoints."""

import time

from fastapi import APIRouter, Depends

from fail2rest.api.deps import get_fail2ban_client
from fail2rest.api.errors import fail2ban_errors
from fail2rest.schemas.common import APIResponse
from fail2rest.schemas.jail import StatsData
from fail2rest.services.fail2ban import Fail2banClient

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=APIResponse[StatsData], response_model_exclude_none=True)
async def get_overall_stats(
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[StatsData]:
    """Aggregate statistics across jails.

    Jails whose status cannot be read are left out of `jail_details` and of
    the banned total; `jail_count` still counts them.
    """
    with fail2ban_errors("get stats"):
        stats = await client.overall_stats()
    return APIResponse(data=StatsData(stats=stats.to_dict(), timestamp=stats.timestamp))


@router.get(
    "/jails/{name}/stats",
    response_model=APIResponse[StatsData],
    response_model_exclude_none=True,
)
async def get_jail_stats(
    name: str,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[StatsData]:
    with fail2ban_errors("get jail stats"):
        stats = await client.jail_stats(name)
    return APIResponse(data=StatsData(stats=stats.to_dict(), timestamp=int(time.time())))
