"""Banned-address listing and ban/unban endpoints."""

from fastapi import APIRouter, Depends

from fail2rest.api.deps import get_fail2ban_client
from fail2rest.api.errors import fail2ban_errors
from fail2rest.schemas.common import APIResponse
from fail2rest.schemas.jail import BannedIPsData, IPActionData, IPRequest
from fail2rest.services.fail2ban import Fail2banClient, validate_ip_address

router = APIRouter(prefix="/jails", tags=["bans"])


@router.get(
    "/{name}/banned",
    response_model=APIResponse[BannedIPsData],
    response_model_exclude_none=True,
)
async def get_banned_ips(
    name: str,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[BannedIPsData]:
    """Addresses currently banned in a jail."""
    with fail2ban_errors("get banned IPs"):
        banned = await client.banned_ips(name)
    return APIResponse(data=BannedIPsData(jail=name, banned_ips=banned))


@router.post(
    "/{name}/ban",
    response_model=APIResponse[IPActionData],
    response_model_exclude_none=True,
)
async def ban_ip(
    name: str,
    body: IPRequest,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[IPActionData]:
    """Ban an address in a jail."""
    with fail2ban_errors("ban IP"):
        address = validate_ip_address(body.ip)
        await client.ban_ip(name, address)
    return APIResponse(
        message="IP banned successfully",
        data=IPActionData(jail=name, ip=address),
    )


@router.post(
    "/{name}/unban",
    response_model=APIResponse[IPActionData],
    response_model_exclude_none=True,
)
async def unban_ip(
    name: str,
    body: IPRequest,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[IPActionData]:
    """Lift a ban on an address in a jail."""
    with fail2ban_errors("unban IP"):
        address = validate_ip_address(body.ip)
        await client.unban_ip(name, address)
    return APIResponse(
        message="IP unbanned successfully",
        data=IPActionData(jail=name, ip=address),
    )
