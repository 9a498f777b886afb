"""Jail listing, inspection and lifecycle endpoints."""

from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends

from fail2rest.api.deps import get_fail2ban_client
from fail2rest.api.errors import fail2ban_errors
from fail2rest.schemas.common import APIResponse
from fail2rest.schemas.jail import JailInfo
from fail2rest.services.fail2ban import Fail2banClient

router = APIRouter(prefix="/jails", tags=["jails"])


@router.get("", response_model=APIResponse[list[JailInfo]], response_model_exclude_none=True)
async def list_jails(
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[list[JailInfo]]:
    """List configured jails."""
    with fail2ban_errors("get jails"):
        names = await client.jails()
    return APIResponse(data=[JailInfo(name=name) for name in names])


@router.get("/{name}", response_model=APIResponse[JailInfo], response_model_exclude_none=True)
async def get_jail(
    name: str,
    include_banned: bool = False,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[JailInfo]:
    """Jail name with its status fields, and its banned IPs when include_banned is set."""
    with fail2ban_errors("get jail status"):
        record = await client.jail(name, include_banned=include_banned)
    return APIResponse(
        data=JailInfo(name=record.name, status=record.fields, banned_ips=record.banned_ips)
    )


@router.get(
    "/{name}/status",
    response_model=APIResponse[dict[str, str]],
    response_model_exclude_none=True,
)
async def get_jail_status(
    name: str,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[dict[str, str]]:
    """Flat field mapping parsed from `fail2ban-client status <jail>`."""
    with fail2ban_errors("get jail status"):
        status = await client.jail_status(name)
    return APIResponse(data=status)


async def _run_lifecycle(
    action: Callable[[str], Awaitable[None]], verb: str, past: str, name: str
) -> APIResponse[dict[str, str]]:
    with fail2ban_errors(f"{verb} jail"):
        await action(name)
    return APIResponse(message=f"Jail {past} successfully")


@router.post(
    "/{name}/start",
    response_model=APIResponse[dict[str, str]],
    response_model_exclude_none=True,
)
async def start_jail(
    name: str,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[dict[str, str]]:
    return await _run_lifecycle(client.start_jail, "start", "started", name)


@router.post(
    "/{name}/stop",
    response_model=APIResponse[dict[str, str]],
    response_model_exclude_none=True,
)
async def stop_jail(
    name: str,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[dict[str, str]]:
    return await _run_lifecycle(client.stop_jail, "stop", "stopped", name)


@router.post(
    "/{name}/restart",
    response_model=APIResponse[dict[str, str]],
    response_model_exclude_none=True,
)
async def restart_jail(
    name: str,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[dict[str, str]]:
    return await _run_lifecycle(client.restart_jail, "restart", "restarted", name)


@router.post(
    "/{name}/reload",
    response_model=APIResponse[dict[str, str]],
    response_model_exclude_none=True,
)
async def reload_jail(
    name: str,
    client: Fail2banClient = Depends(get_fail2ban_client),
) -> APIResponse[dict[str, str]]:
    """Reload one jail's configuration."""
    return await _run_lifecycle(client.reload_jail, "reload", "reloaded", name)
