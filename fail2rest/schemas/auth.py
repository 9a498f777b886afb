"""Pydantic schemas for authentication API."""

from datetime import datetime

from pydantic import BaseModel, Field

from fail2rest.services.auth import ApiKeyCredential, Credential, PasswordCredential


class LoginRequest(BaseModel):
    """Request for login: an API key, or a username and password."""

    api_key: str | None = Field(None, max_length=512)
    username: str | None = Field(None, max_length=128)
    password: str | None = Field(None, max_length=1024)

    def to_credential(self) -> Credential | None:
        """The credential variant carried by this request, API key first."""
        if self.api_key:
            return ApiKeyCredential(api_key=self.api_key)
        if self.username and self.password:
            return PasswordCredential(username=self.username, password=self.password)
        return None


class LoginData(BaseModel):
    """Issued bearer token."""

    token: str
    expires_at: datetime
