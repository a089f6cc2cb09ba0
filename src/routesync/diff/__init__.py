"""Reference vs. schema consistency diff."""

from routesync.diff.engine import SHARED_ACCESSOR, Mismatch, MismatchKind, diff_references, diff_wiring

__all__ = ["SHARED_ACCESSOR", "Mismatch", "MismatchKind", "diff_references", "diff_wiring"]
