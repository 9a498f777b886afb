"""Pydantic schemas for fail2rest."""

from fail2rest.schemas.auth import LoginData, LoginRequest
from fail2rest.schemas.common import APIResponse
from fail2rest.schemas.jail import (
    BannedIPsData,
    IPActionData,
    IPRequest,
    JailInfo,
    StatsData,
    StatusData,
)

__all__ = [
    "APIResponse",
    "BannedIPsData",
    "IPActionData",
    "IPRequest",
    "JailInfo",
    "LoginData",
    "LoginRequest",
    "StatsData",
    "StatusData",
]
