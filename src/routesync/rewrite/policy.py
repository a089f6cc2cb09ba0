"""Fix policy: which mismatch kinds are corrected automatically.

The table is data, not control flow. Kinds without an authoritative target
name are always report-only, whatever the overrides say, and so are column
mismatches. Client wiring fixes are opt-in.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from routesync.diff.engine import Mismatch, MismatchKind


class FixAction(str, Enum):
    AUTOFIX = "autofix"
    REPORT = "report"


DEFAULT_POLICY: Mapping[MismatchKind, FixAction] = MappingProxyType(
    {
        MismatchKind.CASE_MISMATCH: FixAction.AUTOFIX,
        MismatchKind.RENAMED: FixAction.AUTOFIX,
        MismatchKind.UNKNOWN_TABLE: FixAction.REPORT,
        MismatchKind.UNKNOWN_COLUMN: FixAction.REPORT,
        MismatchKind.ORPHAN_COLUMN: FixAction.REPORT,
        MismatchKind.OWN_CLIENT: FixAction.REPORT,
        MismatchKind.UNDEFINED_CLIENT: FixAction.REPORT,
    }
)


@dataclass(frozen=True)
class FixPolicy:
    """Mismatch kind -> action."""

    table: Mapping[MismatchKind, FixAction] = field(default_factory=lambda: DEFAULT_POLICY)

    @classmethod
    def from_overrides(cls, overrides: Mapping[str, str]) -> FixPolicy:
        """Default table with per-kind overrides applied (kind value -> action value)."""
        table = dict(DEFAULT_POLICY)
        for kind, action in overrides.items():
            table[MismatchKind(kind)] = FixAction(action)
        return cls(table=MappingProxyType(table))

    def action_for(self, mismatch: Mismatch) -> FixAction:
        if mismatch.canonical is None or mismatch.ref_kind == "column":
            return FixAction.REPORT
        return self.table.get(mismatch.kind, FixAction.REPORT)

    def should_fix(self, mismatch: Mismatch) -> bool:
        return self.action_for(mismatch) is FixAction.AUTOFIX

    def split(self, mismatches: Iterable[Mismatch]) -> tuple[list[Mismatch], list[Mismatch]]:
        """Partition into (to fix, to flag), preserving order."""
        fixable: list[Mismatch] = []
        flagged: list[Mismatch] = []
        for mismatch in mismatches:
            (fixable if self.should_fix(mismatch) else flagged).append(mismatch)
        return fixable, flagged
