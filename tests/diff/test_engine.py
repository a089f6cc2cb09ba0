"""Tests for diff/engine.py."""

from __future__ import annotations

import pytest

from routesync.diff.engine import SHARED_ACCESSOR, Mismatch, MismatchKind, diff_references, diff_wiring
from routesync.scan.extractor import extract_references
from routesync.scan.models import Reference, WiringFlags
from routesync.schema.snapshot import SchemaSnapshot


@pytest.fixture
def snapshot() -> SchemaSnapshot:
    return SchemaSnapshot.from_rows(
        [
            ("users", "id"),
            ("users", "fullname"),
            ("drivers", "id"),
            ("drivers", "fullname"),
            ("Orders", "id"),
            ("Orders", "total"),
            ("payment", "id"),
        ],
        source="test",
    )


def _kinds(mismatches: list[Mismatch]) -> list[tuple[MismatchKind, str, str | None]]:
    return [(m.kind, m.name, m.canonical) for m in mismatches]


class TestTables:
    def test_exact_match_is_clean(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("table", "users", 1, "from_call")]
        assert diff_references(snapshot, refs) == []

    def test_case_mismatch_targets_catalog_spelling(self, snapshot: SchemaSnapshot) -> None:
        refs = [
            Reference("table", "Users", 1, "from_call"),
            Reference("table", "orders", 2, "sql_from"),
        ]

        assert _kinds(diff_references(snapshot, refs)) == [
            (MismatchKind.CASE_MISMATCH, "Users", "users"),
            (MismatchKind.CASE_MISMATCH, "orders", "Orders"),
        ]

    def test_unknown_table_has_no_target(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("table", "couponsadvanced", 7, "from_call")]

        [mismatch] = diff_references(snapshot, refs)

        assert mismatch.kind is MismatchKind.UNKNOWN_TABLE
        assert mismatch.canonical is None
        assert mismatch.line == 7

    def test_word_boundary_no_fuzzy_matching(self) -> None:
        """orderitems never resolves to order_items without an approved rename."""
        snapshot = SchemaSnapshot.from_rows([("order", "id"), ("order_items", "id")], source="test")
        refs = [Reference("table", "orderitems", 1, "sql_from")]

        assert _kinds(diff_references(snapshot, refs)) == [
            (MismatchKind.UNKNOWN_TABLE, "orderitems", None)
        ]

    def test_approved_rename(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("table", "Payments", 3, "from_call")]

        mismatches = diff_references(snapshot, refs, renames={"payments": "payment"})

        assert _kinds(mismatches) == [(MismatchKind.RENAMED, "Payments", "payment")]

    def test_rename_already_applied_is_clean(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("table", "payment", 3, "from_call")]

        assert diff_references(snapshot, refs, renames={"payment": "payment"}) == []

    def test_duplicate_spellings_require_exact_case_fix(self) -> None:
        snapshot = SchemaSnapshot.from_rows([("Users", "id"), ("users", "id")], source="test")
        refs = [Reference("table", "USERS", 1, "from_call")]

        [mismatch] = diff_references(snapshot, refs)

        assert mismatch.canonical == "Users"
        assert mismatch.exact_case is True

    def test_deduplicated_first_line_wins(self, snapshot: SchemaSnapshot) -> None:
        refs = [
            Reference("table", "Users", 4, "from_call"),
            Reference("table", "Users", 9, "from_call"),
        ]

        [mismatch] = diff_references(snapshot, refs)

        assert mismatch.line == 4


class TestColumns:
    def test_users_drivers_scenario(self, snapshot: SchemaSnapshot) -> None:
        """Columns tied to a mis-cased table resolve through the catalog spelling."""
        refs = extract_references("supabase.from('Users').select('id,fullname');\n")

        mismatches = diff_references(snapshot, refs)

        assert _kinds(mismatches) == [(MismatchKind.CASE_MISMATCH, "Users", "users")]

    def test_unknown_column_on_known_table(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("column", "tip", 2, "select_list", table="orders")]

        [mismatch] = diff_references(snapshot, refs)

        assert mismatch.kind is MismatchKind.UNKNOWN_COLUMN
        assert mismatch.table == "Orders"
        assert mismatch.ref_kind == "column"

    def test_column_case_mismatch_targets_catalog_spelling(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("column", "FullName", 2, "select_list", table="users")]

        [mismatch] = diff_references(snapshot, refs)

        assert mismatch.kind is MismatchKind.CASE_MISMATCH
        assert (mismatch.canonical, mismatch.table) == ("fullname", "users")
        assert mismatch.ref_kind == "column"

    def test_mixed_case_catalog_column(self) -> None:
        """A quoted mixed-case column is not reachable through its folded spelling."""
        snapshot = SchemaSnapshot.from_rows([("users", "id"), ("users", "fullName")], source="test")
        refs = extract_references("supabase.from('users').select('fullname');\n")

        assert _kinds(diff_references(snapshot, refs)) == [
            (MismatchKind.CASE_MISMATCH, "fullname", "fullName")
        ]

    def test_embedded_relation_is_not_a_column(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("column", "drivers", 2, "select_list", table="orders", embedded=True)]
        assert diff_references(snapshot, refs) == []

    def test_orphan_column(self, snapshot: SchemaSnapshot) -> None:
        refs = [
            Reference("column", "total", 1, "sql_select"),
            Reference("column", "surge_fee", 2, "sql_select"),
        ]

        assert _kinds(diff_references(snapshot, refs)) == [
            (MismatchKind.ORPHAN_COLUMN, "surge_fee", None)
        ]

    def test_column_on_unknown_table_only_reports_table(self, snapshot: SchemaSnapshot) -> None:
        """Columns of an unknown table fall back to a schema-wide lookup."""
        refs = [
            Reference("table", "couponsadvanced", 1, "from_call"),
            Reference("column", "id", 1, "select_list", table="couponsadvanced"),
        ]

        assert _kinds(diff_references(snapshot, refs)) == [
            (MismatchKind.UNKNOWN_TABLE, "couponsadvanced", None)
        ]

    def test_column_on_renamed_table_checks_new_table(self, snapshot: SchemaSnapshot) -> None:
        refs = [Reference("column", "amount", 1, "select_list", table="payments")]

        [mismatch] = diff_references(snapshot, refs, renames={"payments": "payment"})

        assert mismatch.kind is MismatchKind.UNKNOWN_COLUMN
        assert mismatch.table == "payment"

    def test_to_dict(self) -> None:
        mismatch = Mismatch(MismatchKind.CASE_MISMATCH, "Users", "users", 3)

        assert mismatch.to_dict() == {
            "kind": "CaseMismatch",
            "name": "Users",
            "canonical": "users",
            "line": 3,
            "ref_kind": "table",
            "table": None,
        }


def _flags(**overrides: object) -> WiringFlags:
    values: dict[str, object] = {
        "has_dotenv": False,
        "has_create_client": False,
        "uses_shared_client": False,
        "uses_client": True,
        "client_undefined": False,
    }
    values.update(overrides)
    return WiringFlags(**values)  # type: ignore[arg-type]


class TestWiring:
    def test_shared_client_is_clean(self) -> None:
        assert diff_wiring(_flags(uses_shared_client=True)) == []

    def test_own_client(self) -> None:
        [mismatch] = diff_wiring(_flags(has_create_client=True, create_client_line=3))

        assert (mismatch.kind, mismatch.name, mismatch.canonical, mismatch.line) == (
            MismatchKind.OWN_CLIENT,
            "createClient",
            SHARED_ACCESSOR,
            3,
        )
        assert mismatch.ref_kind == "client"

    def test_undefined_client(self) -> None:
        [mismatch] = diff_wiring(_flags(client_undefined=True, client_use_line=7))

        assert (mismatch.kind, mismatch.line) == (MismatchKind.UNDEFINED_CLIENT, 7)
        assert mismatch.canonical == "getSupabase"
