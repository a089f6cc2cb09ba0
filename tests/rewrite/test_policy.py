"""Tests for rewrite/policy.py."""

from __future__ import annotations

import pytest

from routesync.diff.engine import Mismatch, MismatchKind
from routesync.rewrite.policy import DEFAULT_POLICY, FixAction, FixPolicy


def _mismatch(kind: MismatchKind, canonical: str | None = "target") -> Mismatch:
    return Mismatch(kind, "name", canonical, 1)


class TestDefaultPolicy:
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (MismatchKind.CASE_MISMATCH, FixAction.AUTOFIX),
            (MismatchKind.RENAMED, FixAction.AUTOFIX),
            (MismatchKind.UNKNOWN_TABLE, FixAction.REPORT),
            (MismatchKind.UNKNOWN_COLUMN, FixAction.REPORT),
            (MismatchKind.ORPHAN_COLUMN, FixAction.REPORT),
            (MismatchKind.OWN_CLIENT, FixAction.REPORT),
            (MismatchKind.UNDEFINED_CLIENT, FixAction.REPORT),
        ],
    )
    def test_table(self, kind: MismatchKind, expected: FixAction) -> None:
        assert DEFAULT_POLICY[kind] is expected

    def test_covers_every_kind(self) -> None:
        assert set(DEFAULT_POLICY) == set(MismatchKind)


class TestFixPolicy:
    def test_fixes_case_mismatch(self) -> None:
        assert FixPolicy().should_fix(_mismatch(MismatchKind.CASE_MISMATCH))

    def test_never_fixes_without_target(self) -> None:
        """A fixable kind without a canonical name is still report-only."""
        policy = FixPolicy()

        assert policy.action_for(_mismatch(MismatchKind.RENAMED, canonical=None)) is FixAction.REPORT

    def test_column_case_mismatch_is_report_only(self) -> None:
        column = Mismatch(
            MismatchKind.CASE_MISMATCH, "fullname", "fullName", 1, ref_kind="column", table="users"
        )
        policy = FixPolicy.from_overrides({"CaseMismatch": "autofix"})

        assert policy.action_for(column) is FixAction.REPORT

    def test_client_wiring_fix_is_opt_in(self) -> None:
        own = Mismatch(MismatchKind.OWN_CLIENT, "createClient", "getSupabase", 3, ref_kind="client")

        assert not FixPolicy().should_fix(own)
        assert FixPolicy.from_overrides({"OwnClient": "autofix"}).should_fix(own)

    def test_override_to_report(self) -> None:
        policy = FixPolicy.from_overrides({"CaseMismatch": "report"})

        assert not policy.should_fix(_mismatch(MismatchKind.CASE_MISMATCH))
        assert policy.should_fix(_mismatch(MismatchKind.RENAMED))

    def test_split_preserves_order(self) -> None:
        first = Mismatch(MismatchKind.UNKNOWN_TABLE, "coupons", None, 1)
        second = Mismatch(MismatchKind.CASE_MISMATCH, "Users", "users", 2)
        third = Mismatch(MismatchKind.RENAMED, "payments", "payment", 3)

        fixable, flagged = FixPolicy().split([first, second, third])

        assert fixable == [second, third]
        assert flagged == [first]
