"""Observability module for remoteargs.

Provides structured logging with remote call context.
"""

from remoteargs.observability.logging import (
    LogContext,
    configure_logging,
    get_logger,
    remote_id_var,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
    "remote_id_var",
]
