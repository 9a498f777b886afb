# fail2rest Core Module
from .config import Settings, get_settings
from .logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "get_logger",
]
