"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (ROUTESYNC__SECTION__KEY)
3. Conventional environment variables (DATABASE_URL, SUPABASE_URL, ...)
4. Repo YAML (.routesync/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    ROUTESYNC__<SECTION>__<KEY>=<VALUE>

Examples:
    ROUTESYNC__LOGGING__LEVEL=DEBUG
    ROUTESYNC__CATALOG__STRATEGY=rest
    ROUTESYNC__ROUTES__DIRECTORY=/srv/api/routes
    ROUTESYNC__REWRITE__BACKUP_LAYOUT=directory
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
SchemaStrategy = Literal["auto", "catalog", "rest"]
BackupLayout = Literal["sibling", "directory"]
FixActionName = Literal["autofix", "report"]

# Kinds that carry an authoritative target name and may be auto-fixed.
FIXABLE_KINDS = frozenset({"CaseMismatch", "Renamed", "OwnClient", "UndefinedClient"})
MISMATCH_KINDS = FIXABLE_KINDS | {"UnknownTable", "UnknownColumn", "OrphanColumn"}


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        ROUTESYNC__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. The console report is printed regardless of level.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class CatalogConfig(BaseModel):
    """Live schema source.

    Env vars:
        ROUTESYNC__CATALOG__STRATEGY: auto, catalog or rest
        ROUTESYNC__CATALOG__DATABASE_URL: SQLAlchemy URL (also DATABASE_URL)
        ROUTESYNC__CATALOG__REST_URL: Data API base URL (also SUPABASE_URL)
        ROUTESYNC__CATALOG__REST_KEY: Data API service key (also SUPABASE_SERVICE_KEY)
        ROUTESYNC__CATALOG__SCHEMA_NAME: Application schema (default: public)
    """

    strategy: SchemaStrategy = Field(
        default="auto",
        description="auto uses the catalog when a database URL is set, otherwise the data API.",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL, e.g. postgresql+psycopg2://user:pw@host/db.",
    )
    rest_url: str | None = Field(
        default=None,
        description="Base URL of the PostgREST/Supabase data API.",
    )
    rest_key: str | None = Field(
        default=None,
        description="Service role key. Anonymous keys usually cannot read the catalog.",
    )
    schema_name: str = Field(
        default="public",
        description="Namespace holding the application tables.",
    )
    timeout_sec: float = Field(
        default=10.0,
        description="Connection timeout handed to the database or HTTP client.",
    )

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class RoutesConfig(BaseModel):
    """Route source discovery.

    Env vars:
        ROUTESYNC__ROUTES__DIRECTORY: Route directory (also ROUTES_DIR)
    """

    directory: str = Field(
        default="routes",
        description="Flat directory of route modules. Relative paths resolve against the cwd.",
    )
    extensions: list[str] = Field(
        default_factory=lambda: [".js"],
        description="File extensions treated as route modules.",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="fnmatch patterns of file names to skip.",
    )

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in v]


class RewriteConfig(BaseModel):
    """Rewrite behavior.

    Env vars:
        ROUTESYNC__REWRITE__BACKUP_LAYOUT: sibling (<file>.bak) or directory
        ROUTESYNC__REWRITE__BACKUP_DIR: Root for timestamped backup directories
        ROUTESYNC__REWRITE__DRY_RUN: Compute fixes without writing
    """

    backup_layout: BackupLayout = Field(
        default="sibling",
        description="sibling writes <file>.bak next to the file; directory writes "
        "<backup_dir>/<timestamp>/<file>.",
    )
    backup_dir: str = Field(
        default=".routesync/backups",
        description="Root of timestamped backup directories (directory layout only).",
    )
    renames: dict[str, str] = Field(
        default_factory=dict,
        description="Approved table renames, old name -> new name. Keys match case-insensitively.",
    )
    policy: dict[str, FixActionName] = Field(
        default_factory=dict,
        description="Per-kind overrides of the fix policy table.",
    )
    dry_run: bool = Field(
        default=False,
        description="Report the fixes that would be applied without writing anything.",
    )

    @field_validator("renames")
    @classmethod
    def normalize_renames(cls, v: dict[str, str]) -> dict[str, str]:
        return {old.lower(): new for old, new in v.items()}

    @field_validator("policy")
    @classmethod
    def validate_policy(cls, v: dict[str, FixActionName]) -> dict[str, FixActionName]:
        for kind, action in v.items():
            if kind not in MISMATCH_KINDS:
                raise ValueError(f"Unknown mismatch kind: {kind}")
            if action == "autofix" and kind not in FIXABLE_KINDS:
                raise ValueError(f"{kind} has no authoritative target and cannot be auto-fixed")
        return v


class AuditConfig(BaseModel):
    """Orchestrator configuration.

    Env vars:
        ROUTESYNC__AUDIT__MAX_WORKERS: Files processed in parallel
    """

    max_workers: int = Field(
        default=1,
        description="Parallel file workers. Files are independent; 1 keeps processing sequential.",
    )

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v


class ReportConfig(BaseModel):
    """Report output.

    Env vars:
        ROUTESYNC__REPORT__JSON_PATH: Write the machine-readable report here
    """

    json_path: str | None = Field(
        default=None,
        description="Optional path of the JSON report artifact.",
    )


class RouteSyncConfig(BaseModel):
    """Root configuration for routesync."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    routes: RoutesConfig = Field(default_factory=RoutesConfig)
    rewrite: RewriteConfig = Field(default_factory=RewriteConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
