"""fail2rest API router - aggregates all API routes."""

from fastapi import APIRouter, Depends

from fail2rest.api import auth, ips, jails, stats, status
from fail2rest.api.deps import require_token

# Bearer token required on everything except login
protected_router = APIRouter(dependencies=[Depends(require_token)])
protected_router.include_router(status.router)
protected_router.include_router(jails.router)
protected_router.include_router(ips.router)
protected_router.include_router(stats.router)


def build_api_router(prefix: str) -> APIRouter:
    """Router for every versioned route, mounted under `prefix`."""
    api_router = APIRouter(prefix=prefix)
    api_router.include_router(auth.router)
    api_router.include_router(protected_router)
    return api_router
