"""Per-file and run-level audit records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from routesync.diff.engine import Mismatch
from routesync.rewrite.ops import AppliedFix
from routesync.scan.models import WiringFlags

FileStatus = Literal["unchanged", "fixed", "flagged", "error"]


@dataclass
class FileReport:
    """Result of processing one route file.

    Status precedence: ``error`` over ``flagged`` over ``fixed``. A file
    with fixes applied but mismatches left for review is ``flagged``;
    ``applied`` still lists what was fixed.
    """

    path: str
    tables: list[str] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    mismatches: list[Mismatch] = field(default_factory=list)
    applied: list[AppliedFix] = field(default_factory=list)
    flagged: list[Mismatch] = field(default_factory=list)
    wiring: WiringFlags | None = None
    backup_path: str | None = None
    error: dict[str, Any] | None = None

    @property
    def status(self) -> FileStatus:
        if self.error is not None:
            return "error"
        if self.flagged:
            return "flagged"
        if self.applied:
            return "fixed"
        return "unchanged"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status,
            "tables": self.tables,
            "columns": self.columns,
            "mismatches": [m.to_dict() for m in self.mismatches],
            "applied": [a.to_dict() for a in self.applied],
            "flagged": [m.to_dict() for m in self.flagged],
            "wiring": self.wiring.to_dict() if self.wiring else None,
            "backup_path": self.backup_path,
            "error": self.error,
        }


@dataclass
class AuditReport:
    """Run-level summary across every route file."""

    schema_source: str
    table_count: int
    routes_dir: str
    dry_run: bool = False
    files: list[FileReport] = field(default_factory=list)

    def by_status(self, status: FileStatus) -> list[FileReport]:
        return [f for f in self.files if f.status == status]

    @property
    def totals(self) -> dict[str, int]:
        counts = {"files": len(self.files), "unchanged": 0, "fixed": 0, "flagged": 0, "error": 0}
        for report in self.files:
            counts[report.status] += 1
        counts["fixes_applied"] = sum(a.occurrences for f in self.files for a in f.applied)
        counts["mismatches"] = sum(len(f.mismatches) for f in self.files)
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_source": self.schema_source,
            "table_count": self.table_count,
            "routes_dir": self.routes_dir,
            "dry_run": self.dry_run,
            "totals": self.totals,
            "files": [f.to_dict() for f in self.files],
        }
