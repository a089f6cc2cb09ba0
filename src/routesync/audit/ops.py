"""Audit orchestration: one schema fetch, then every route file in turn.

Per file: read -> extract references -> wiring audit -> diff -> rewrite.
A failure while processing a file is recorded against that file and the
run moves on; only a schema fetch failure aborts the run.
"""

from __future__ import annotations

import contextvars
import fnmatch
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog

from routesync.audit.models import AuditReport, FileReport
from routesync.config.loader import resolve_routes_dir
from routesync.config.models import RoutesConfig, RouteSyncConfig
from routesync.core.errors import ConfigError, InternalError, RouteSyncError
from routesync.diff.engine import diff_references, diff_wiring
from routesync.rewrite.ops import BackupWriter, SafeRewriter, SourceUnit
from routesync.rewrite.policy import FixPolicy
from routesync.scan.extractor import columns_used, extract_references, tables_used
from routesync.scan.wiring import audit_wiring
from routesync.schema.introspect import SchemaIntrospector, open_introspector
from routesync.schema.snapshot import SchemaSnapshot

logger = structlog.get_logger()

_BACKUP_NAME = re.compile(r"\.bak(\.\d+)?$")


def discover_route_files(directory: Path, routes: RoutesConfig) -> list[Path]:
    """Route modules directly under ``directory``, sorted by name.

    Hidden files, backups and names matching ``routes.exclude`` are skipped.

    Raises:
        ConfigError: ``directory`` does not exist or is not a directory.
    """
    if not directory.is_dir():
        raise ConfigError.invalid_value("routes.directory", str(directory), "not a directory")

    extensions = {ext.lower() for ext in routes.extensions}
    files = []
    for path in directory.iterdir():
        name = path.name
        if name.startswith(".") or _BACKUP_NAME.search(name):
            continue
        if path.suffix.lower() not in extensions or not path.is_file():
            continue
        if any(fnmatch.fnmatch(name, pattern) for pattern in routes.exclude):
            continue
        files.append(path)
    return sorted(files)


class AuditOps:
    """Runs the per-file pipeline against one schema snapshot.

    Args:
        config: Resolved configuration.
        routes_dir: Directory holding the route modules.
        project_root: Base for relative backup directories.
        dry_run: Overrides ``config.rewrite.dry_run`` when not None.
    """

    def __init__(
        self,
        config: RouteSyncConfig,
        *,
        routes_dir: Path,
        project_root: Path | None = None,
        dry_run: bool | None = None,
    ) -> None:
        self._config = config
        self._routes_dir = routes_dir
        self._dry_run = config.rewrite.dry_run if dry_run is None else dry_run

        backup_root = Path(config.rewrite.backup_dir).expanduser()
        if not backup_root.is_absolute():
            backup_root = (project_root or Path.cwd()) / backup_root
        self._rewriter = SafeRewriter(
            FixPolicy.from_overrides(config.rewrite.policy),
            BackupWriter(config.rewrite.backup_layout, backup_root),
            dry_run=self._dry_run,
        )

    def run(self, introspector: SchemaIntrospector) -> AuditReport:
        """Fetch the schema once and process every route file.

        Raises:
            SchemaFetchError: The schema could not be fetched.
            ConfigError: The route directory is missing.
        """
        files = discover_route_files(self._routes_dir, self._config.routes)
        snapshot = introspector.fetch()
        logger.info("schema_loaded", source=snapshot.source, tables=len(snapshot))

        report = AuditReport(
            schema_source=snapshot.source,
            table_count=len(snapshot),
            routes_dir=str(self._routes_dir),
            dry_run=self._dry_run,
        )
        logger.info("audit_started", files=len(files), dry_run=self._dry_run)

        workers = self._config.audit.max_workers
        if workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="routesync-audit") as pool:
                futures = [
                    pool.submit(contextvars.copy_context().run, self.process_file, path, snapshot)
                    for path in files
                ]
                report.files = [f.result() for f in futures]
        else:
            report.files = [self.process_file(path, snapshot) for path in files]

        logger.info("audit_complete", **report.totals)
        return report

    def process_file(self, path: Path, snapshot: SchemaSnapshot) -> FileReport:
        """Run the pipeline for one file. Never raises."""
        report = FileReport(path=str(path))
        try:
            unit = SourceUnit.read(path)
            refs = extract_references(unit.content)
            report.tables = tables_used(refs)
            report.columns = columns_used(refs)
            report.wiring = wiring = audit_wiring(unit.content)
            report.mismatches = sorted(
                diff_references(snapshot, refs, self._config.rewrite.renames) + diff_wiring(wiring),
                key=lambda m: m.line,
            )

            result = self._rewriter.rewrite(unit, report.mismatches)
            report.applied = result.applied
            report.flagged = result.flagged
            if result.backup is not None:
                report.backup_path = str(result.backup.path)
        except RouteSyncError as e:
            report.error = e.to_dict()
            logger.warning("file_failed", path=str(path), error=e.error_name, message=e.message)
        except Exception as e:
            report.error = InternalError.unexpected(str(e), path=str(path)).to_dict()
            logger.exception("file_failed_unexpected", path=str(path))

        logger.debug(
            "file_processed",
            path=str(path),
            status=report.status,
            mismatches=len(report.mismatches),
            fixes=len(report.applied),
        )
        return report


def run_audit(
    config: RouteSyncConfig,
    *,
    project_root: Path | None = None,
    dry_run: bool | None = None,
) -> AuditReport:
    """Open the configured schema source, run the audit, release the client."""
    ops = AuditOps(
        config,
        routes_dir=resolve_routes_dir(config, project_root),
        project_root=project_root,
        dry_run=dry_run,
    )
    with open_introspector(config.catalog) as introspector:
        return ops.run(introspector)
