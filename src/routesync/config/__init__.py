"""Configuration loading and models."""

from routesync.config.loader import load_config, resolve_routes_dir
from routesync.config.models import (
    AuditConfig,
    CatalogConfig,
    LoggingConfig,
    LogOutputConfig,
    ReportConfig,
    RewriteConfig,
    RoutesConfig,
    RouteSyncConfig,
)

__all__ = [
    "AuditConfig",
    "CatalogConfig",
    "LogOutputConfig",
    "LoggingConfig",
    "ReportConfig",
    "RewriteConfig",
    "RouteSyncConfig",
    "RoutesConfig",
    "load_config",
    "resolve_routes_dir",
]
