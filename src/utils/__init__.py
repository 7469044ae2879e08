"""
Scenario fixtures utilities module.
"""

from src.utils.config import get_settings
from src.utils.logging import (
    configure_logging,
    ensure_logging_configured,
    get_logger,
    reset_logging,
)

__all__ = [
    # Config
    "get_settings",
    # Logging
    "get_logger",
    "configure_logging",
    "ensure_logging_configured",
    "reset_logging",
]
