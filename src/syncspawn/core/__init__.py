"""syncspawn core -- errors, logging and settings shared by every layer.

Architecture::

    errors.py      Structured error hierarchy (SpawnError, InvocationError)
    logging.py     structlog configuration (configure_logging, get_logger)
    settings.py    pydantic-settings configuration (SpawnSettings)
"""

from syncspawn.core.errors import (
    ErrorCategory,
    ErrorContext,
    ForkError,
    InternalError,
    InvocationError,
    SpawnError,
    SpawnFailedError,
)
from syncspawn.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)
from syncspawn.core.settings import SpawnSettings, get_settings, reset_settings

__all__ = [
    # errors
    "ErrorCategory",
    "ErrorContext",
    "SpawnError",
    "InvocationError",
    "ForkError",
    "SpawnFailedError",
    "InternalError",
    # logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    # settings
    "SpawnSettings",
    "get_settings",
    "reset_settings",
]
