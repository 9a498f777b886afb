"""Services for fail2rest."""

from fail2rest.services.auth import AuthService
from fail2rest.services.fail2ban import Fail2banClient

__all__ = [
    "AuthService",
    "Fail2banClient",
]
