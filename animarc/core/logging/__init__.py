"""
Animarc logging: JSON-line output and ContextVar-scoped log context.
"""

from animarc.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "ContextFilter",
    "JSONFormatter",
    "set_log_context",
    "get_log_context",
    "clear_log_context",
]
