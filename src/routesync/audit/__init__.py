"""Route directory audit: orchestration and reporting."""

from routesync.audit.models import AuditReport, FileReport, FileStatus
from routesync.audit.ops import AuditOps, discover_route_files, run_audit
from routesync.audit.report import make_manifest_table, render_report, write_json_report

__all__ = [
    "AuditOps",
    "AuditReport",
    "FileReport",
    "FileStatus",
    "discover_route_files",
    "make_manifest_table",
    "render_report",
    "run_audit",
    "write_json_report",
]
