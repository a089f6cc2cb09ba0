"""routesync error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Schema (fatal, aborts the run)
- 4xxx: Scan (per file)
- 5xxx: Rewrite (per file)
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003

    # Schema (3xxx)
    SCHEMA_CONNECTION_FAILED = 3001
    SCHEMA_QUERY_FAILED = 3002
    SCHEMA_EMPTY = 3003
    SCHEMA_BAD_PAYLOAD = 3004

    # Scan (4xxx)
    SCAN_UNREADABLE = 4001

    # Rewrite (5xxx)
    BACKUP_WRITE_FAILED = 5001
    BACKUP_VERIFY_FAILED = 5002
    REWRITE_WRITE_FAILED = 5003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True)
class RouteSyncError(Exception):
    """Base error with structured context for reports."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'SCHEMA_QUERY_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the JSON report."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(RouteSyncError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )


class SchemaFetchError(RouteSyncError):
    """Schema introspection failed. The run cannot continue on a partial schema."""

    @classmethod
    def connection_failed(cls, source: str, reason: str) -> "SchemaFetchError":
        return cls(
            code=ErrorCode.SCHEMA_CONNECTION_FAILED,
            message=f"Could not connect to {source}: {reason}",
            details={"source": source, "reason": reason},
        )

    @classmethod
    def query_failed(cls, source: str, reason: str) -> "SchemaFetchError":
        return cls(
            code=ErrorCode.SCHEMA_QUERY_FAILED,
            message=f"Catalog query against {source} failed: {reason}",
            details={"source": source, "reason": reason},
        )

    @classmethod
    def empty(cls, source: str, schema_name: str) -> "SchemaFetchError":
        return cls(
            code=ErrorCode.SCHEMA_EMPTY,
            message=f"No tables found in schema '{schema_name}' via {source}",
            details={"source": source, "schema": schema_name},
        )

    @classmethod
    def bad_payload(cls, source: str, reason: str) -> "SchemaFetchError":
        return cls(
            code=ErrorCode.SCHEMA_BAD_PAYLOAD,
            message=f"Unexpected catalog payload from {source}: {reason}",
            details={"source": source, "reason": reason},
        )


class ScanError(RouteSyncError):
    """A route file could not be read for scanning."""

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.SCAN_UNREADABLE,
            message=f"Cannot read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class BackupError(RouteSyncError):
    """Backup could not be persisted. The original file must stay untouched."""

    @classmethod
    def write_failed(cls, path: str, backup_path: str, reason: str) -> "BackupError":
        return cls(
            code=ErrorCode.BACKUP_WRITE_FAILED,
            message=f"Backup of {path} to {backup_path} failed: {reason}",
            details={"path": path, "backup_path": backup_path, "reason": reason},
        )

    @classmethod
    def verify_failed(cls, path: str, backup_path: str) -> "BackupError":
        return cls(
            code=ErrorCode.BACKUP_VERIFY_FAILED,
            message=f"Backup {backup_path} does not match {path}",
            details={"path": path, "backup_path": backup_path},
        )


class RewriteError(RouteSyncError):
    """Rewritten content could not be written back."""

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "RewriteError":
        return cls(
            code=ErrorCode.REWRITE_WRITE_FAILED,
            message=f"Writing {path} failed: {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(RouteSyncError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
