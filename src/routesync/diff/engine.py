"""Consistency differ: source references vs. live schema.

Table and column names compare case-insensitively; a name found only under
different casing is a CaseMismatch towards the catalog spelling. Client
wiring is diffed against the shared accessor: a module building its own
client, or using one it never declares, is a wiring mismatch.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from routesync.scan.models import Reference, WiringFlags
from routesync.schema.snapshot import SchemaSnapshot


class MismatchKind(str, Enum):
    UNKNOWN_TABLE = "UnknownTable"
    UNKNOWN_COLUMN = "UnknownColumn"
    CASE_MISMATCH = "CaseMismatch"
    RENAMED = "Renamed"
    ORPHAN_COLUMN = "OrphanColumn"
    OWN_CLIENT = "OwnClient"
    UNDEFINED_CLIENT = "UndefinedClient"


# "client" mismatches are about how the module obtains its data-API client.
MismatchTarget = Literal["table", "column", "client"]

# Correction target of client wiring mismatches.
SHARED_ACCESSOR = "getSupabase"


@dataclass(frozen=True, slots=True)
class Mismatch:
    """A reference that disagrees with the schema.

    ``canonical`` is the correction target, None when no authoritative
    name exists. ``table`` is the canonical table a column mismatch
    belongs to. ``exact_case`` is set when the catalog holds several
    spellings of the name, so a fix must leave the other spellings alone.
    """

    kind: MismatchKind
    name: str
    canonical: str | None
    line: int
    ref_kind: MismatchTarget = "table"
    table: str | None = None
    exact_case: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "canonical": self.canonical,
            "line": self.line,
            "ref_kind": self.ref_kind,
            "table": self.table,
        }


def diff_references(
    snapshot: SchemaSnapshot,
    refs: Iterable[Reference],
    renames: Mapping[str, str] | None = None,
) -> list[Mismatch]:
    """Classify every reference against ``snapshot``.

    Args:
        snapshot: Live schema for this run.
        refs: References extracted from one file.
        renames: Approved table renames, old name -> new name. Keys match
            case-insensitively.

    Returns:
        Mismatches de-duplicated by (kind, name, table), first line wins,
        ordered by line.
    """
    approved = {old.lower(): new for old, new in (renames or {}).items()}
    found: dict[tuple[MismatchKind, str, str | None], Mismatch] = {}

    def add(mismatch: Mismatch) -> None:
        found.setdefault((mismatch.kind, mismatch.name, mismatch.table), mismatch)

    for ref in refs:
        if ref.kind == "table":
            mismatch = _diff_table(snapshot, ref, approved)
        else:
            mismatch = _diff_column(snapshot, ref, approved)
        if mismatch is not None:
            add(mismatch)

    return sorted(found.values(), key=lambda m: m.line)


def diff_wiring(flags: WiringFlags) -> list[Mismatch]:
    """Wiring mismatches of one module, both targeting the shared accessor."""
    mismatches: list[Mismatch] = []
    if flags.has_create_client:
        mismatches.append(
            Mismatch(
                MismatchKind.OWN_CLIENT,
                "createClient",
                SHARED_ACCESSOR,
                flags.create_client_line or 1,
                ref_kind="client",
            )
        )
    if flags.client_undefined:
        mismatches.append(
            Mismatch(
                MismatchKind.UNDEFINED_CLIENT,
                "supabase",
                SHARED_ACCESSOR,
                flags.client_use_line or 1,
                ref_kind="client",
            )
        )
    return mismatches


def _diff_table(snapshot: SchemaSnapshot, ref: Reference, approved: Mapping[str, str]) -> Mismatch | None:
    target = approved.get(ref.name.lower())
    if target is not None and target != ref.name:
        return Mismatch(MismatchKind.RENAMED, ref.name, target, ref.line)

    canonical = snapshot.canonical_table(ref.name)
    if canonical is None:
        return Mismatch(MismatchKind.UNKNOWN_TABLE, ref.name, None, ref.line)
    if canonical != ref.name:
        return Mismatch(
            MismatchKind.CASE_MISMATCH,
            ref.name,
            canonical,
            ref.line,
            exact_case=len(snapshot.variants(ref.name)) > 1,
        )
    return None


def _resolve_table(snapshot: SchemaSnapshot, raw: str | None, approved: Mapping[str, str]) -> str | None:
    if raw is None:
        return None
    return snapshot.canonical_table(approved.get(raw.lower(), raw))


def _diff_column(snapshot: SchemaSnapshot, ref: Reference, approved: Mapping[str, str]) -> Mismatch | None:
    table = _resolve_table(snapshot, ref.table, approved)
    # .select('users(id,name)') embeds a related table
    is_embed = ref.embedded and ref.name in snapshot

    if table is not None:
        if is_embed:
            return None
        canonical = snapshot.canonical_column(table, ref.name)
        if canonical is None:
            return Mismatch(
                MismatchKind.UNKNOWN_COLUMN, ref.name, None, ref.line, ref_kind="column", table=table
            )
        if canonical != ref.name:
            # "fullName" is only reachable quoted; fullname never matches it
            return Mismatch(
                MismatchKind.CASE_MISMATCH, ref.name, canonical, ref.line, ref_kind="column", table=table
            )
        return None

    if snapshot.tables_with_column(ref.name) or is_embed:
        return None
    return Mismatch(MismatchKind.ORPHAN_COLUMN, ref.name, None, ref.line, ref_kind="column")
