"""Shared utilities for tabsync (L1).

Currently: structlog-backed logging (tabsync_shared.logging).
"""

from tabsync_shared.logging import (
    Logger,
    bind_logger_context,
    configure_from_settings,
    configure_logging,
    create_logger,
    get_component_logger,
    get_current_logger,
    set_current_logger,
)

__all__ = [
    "Logger",
    "bind_logger_context",
    "configure_from_settings",
    "configure_logging",
    "create_logger",
    "get_component_logger",
    "get_current_logger",
    "set_current_logger",
]
