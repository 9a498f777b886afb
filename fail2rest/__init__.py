"""fail2rest - authenticated REST gateway for fail2ban."""

__version__ = "2.0.0"
