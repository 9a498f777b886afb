"""fail2rest configuration.

Settings are read once at startup from FAIL2REST_* environment variables
(or a .env file) and passed explicitly to the application factory.
"""

import re
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fail2rest import __version__

# "<count>-<period>" where period is Seconds, Minutes, Hours or Days
RATE_SPEC_PATTERN = re.compile(r"^(?P<count>[1-9][0-9]*)-(?P<period>[SMHD])$")

PLACEHOLDER_JWT_SECRET = "change-this-secret"
MIN_JWT_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings. Immutable once constructed."""

    model_config = SettingsConfigDict(
        env_prefix="FAIL2REST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "fail2rest"
    app_version: str = __version__
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    tls_cert_file: str | None = None
    tls_key_file: str | None = None
    api_prefix: str = "/api/v1"

    # Authentication
    jwt_secret_key: str = Field(..., description="HMAC secret used to sign bearer tokens")
    jwt_token_expire_minutes: int = Field(default=1440, ge=1)
    api_keys: list[str] = Field(default_factory=list)
    users: dict[str, str] = Field(
        default_factory=dict,
        description="username -> argon2 hash (see `fail2rest hash-password`)",
    )

    # fail2ban
    fail2ban_client_path: str = "/usr/bin/fail2ban-client"
    use_sudo: bool = False
    sudo_path: str = "sudo"
    command_timeout_seconds: float = Field(default=30.0, gt=0)

    # Request pipeline
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    max_body_size: int = Field(default=1024 * 1024, gt=0)
    login_rate_limit: str = "10-M"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["structured", "dev"] = "dev"

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        if not v or v == PLACEHOLDER_JWT_SECRET:
            raise ValueError(
                "jwt_secret_key must be set. "
                'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        if len(v) < MIN_JWT_SECRET_LENGTH:
            raise ValueError(
                f"jwt_secret_key must be at least {MIN_JWT_SECRET_LENGTH} characters, "
                f"got {len(v)}"
            )
        return v

    @field_validator("login_rate_limit")
    @classmethod
    def validate_login_rate_limit(cls, v: str) -> str:
        v = v.strip().upper()
        if not RATE_SPEC_PATTERN.match(v):
            raise ValueError(
                f"login_rate_limit must look like '10-M' (count-period, period one of S/M/H/D), "
                f"got {v!r}"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        v = v.rstrip("/")
        if v and not v.startswith("/"):
            raise ValueError("api_prefix must start with '/'")
        return v

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_cert_file and self.tls_key_file)


def get_settings(**overrides) -> Settings:
    """Build a settings object from the environment.

    Keyword overrides take precedence over environment values. The caller
    owns the returned object; there is no module-level cache.
    """
    return Settings(**overrides)
