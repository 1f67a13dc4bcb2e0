"""
Monitoring for Evoline.

Structured logging helpers built on loguru.

Author: Evoline Team
License: MIT
"""

from .logging_config import (
    configure_logging,
    configure_from_settings,
    get_logger,
    LogContext,
    log_evolution_start,
    log_evolution_complete,
)

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "LogContext",
    "log_evolution_start",
    "log_evolution_complete",
]
