"""Policy-driven, backup-first source rewriting."""

from routesync.rewrite.ops import (
    AppliedFix,
    Backup,
    BackupWriter,
    RewriteResult,
    SafeRewriter,
    SourceUnit,
    substitute,
)
from routesync.rewrite.policy import DEFAULT_POLICY, FixAction, FixPolicy
from routesync.rewrite.wiring import WiringEdit, adopt_shared_client

__all__ = [
    "DEFAULT_POLICY",
    "AppliedFix",
    "Backup",
    "BackupWriter",
    "FixAction",
    "FixPolicy",
    "RewriteResult",
    "SafeRewriter",
    "SourceUnit",
    "WiringEdit",
    "adopt_shared_client",
    "substitute",
]
