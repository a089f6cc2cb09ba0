"""Core module exports."""

from routesync.core.errors import (
    BackupError,
    ConfigError,
    ErrorCode,
    InternalError,
    RewriteError,
    RouteSyncError,
    ScanError,
    SchemaFetchError,
)
from routesync.core.logging import (
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from routesync.core.progress import pluralize, spinner, status

__all__ = [
    # Errors
    "BackupError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "RewriteError",
    "RouteSyncError",
    "ScanError",
    "SchemaFetchError",
    # Logging
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Progress
    "pluralize",
    "spinner",
    "status",
]
