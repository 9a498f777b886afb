"""Pydantic schemas for jail, ban and statistics endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class JailInfo(BaseModel):
    name: str
    status: dict[str, str] | None = None
    banned_ips: list[str] | None = None


class IPRequest(BaseModel):
    """Body of ban/unban requests."""

    ip: str = Field(..., min_length=1, max_length=64)


class IPActionData(BaseModel):
    jail: str
    ip: str


class BannedIPsData(BaseModel):
    jail: str
    banned_ips: list[str]


class StatusData(BaseModel):
    status: dict[str, Any]
    timestamp: int


class StatsData(BaseModel):
    stats: dict[str, Any]
    timestamp: int
