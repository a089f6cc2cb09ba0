"""Safe rewriter: corrects fixable mismatches in place.

A file is rewritten only after a byte-exact backup of its original content
has been written, flushed to disk and read back. If the backup cannot be
confirmed the file is left untouched. The new content replaces the file
atomically (temp file + rename).

Name mismatches are fixed by whole-word substitution; client wiring
mismatches by moving the module onto the shared accessor. A wiring fix the
edit cannot carry out is flagged instead.
"""

from __future__ import annotations

import hashlib
import os
import re
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from routesync.config.models import BackupLayout
from routesync.core.errors import BackupError, RewriteError, ScanError
from routesync.diff.engine import Mismatch, MismatchKind
from routesync.rewrite.policy import FixPolicy
from routesync.rewrite.wiring import adopt_shared_client

logger = structlog.get_logger()

# Identifier characters in JS; a match must not touch any of them.
_IDENT = "A-Za-z0-9_$"


@dataclass
class SourceUnit:
    """One route file moving through the pipeline.

    ``raw`` holds the bytes as read and is what gets backed up. ``content``
    is the working text; ``modified`` flips once a fix changes it.
    """

    path: Path
    raw: bytes
    content: str
    modified: bool = False

    @classmethod
    def read(cls, path: Path) -> SourceUnit:
        try:
            raw = path.read_bytes()
            content = raw.decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ScanError.unreadable(str(path), str(e)) from e
        return cls(path=path, raw=raw, content=content)


@dataclass(frozen=True, slots=True)
class AppliedFix:
    kind: MismatchKind
    name: str
    canonical: str
    occurrences: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "canonical": self.canonical,
            "occurrences": self.occurrences,
        }


@dataclass(frozen=True, slots=True)
class Backup:
    source: Path
    path: Path
    digest: str


@dataclass
class RewriteResult:
    """Outcome of rewriting one file."""

    path: str
    applied: list[AppliedFix] = field(default_factory=list)
    flagged: list[Mismatch] = field(default_factory=list)
    backup: Backup | None = None
    written: bool = False
    dry_run: bool = False
    old_hash: str | None = None
    new_hash: str | None = None


def substitute(content: str, name: str, canonical: str, *, exact_case: bool = False) -> tuple[str, int]:
    """Replace whole-word occurrences of ``name`` with ``canonical``.

    Matching is case-insensitive unless ``exact_case``. Occurrences already
    spelled ``canonical`` are left as they are and not counted.

    Returns:
        (new content, number of occurrences changed)
    """
    flags = 0 if exact_case else re.IGNORECASE
    pattern = re.compile(rf"(?<![{_IDENT}]){re.escape(name)}(?![{_IDENT}])", flags)
    changed = 0

    def _replace(m: re.Match[str]) -> str:
        nonlocal changed
        if m.group(0) == canonical:
            return canonical
        changed += 1
        return canonical

    return pattern.sub(_replace, content), changed


class BackupWriter:
    """Writes verified backups, never overwriting an existing one.

    sibling: ``<file>.bak``, then ``<file>.bak.1``, ``<file>.bak.2``, ...
    directory: ``<root>/<run timestamp>/<file>``
    """

    def __init__(
        self,
        layout: BackupLayout = "sibling",
        root: Path | None = None,
        *,
        stamp: str | None = None,
    ) -> None:
        if layout == "directory" and root is None:
            raise ValueError("directory backup layout requires a root")
        self._layout = layout
        self._root = root
        self._stamp = stamp or datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")

    @property
    def run_dir(self) -> Path | None:
        if self._layout != "directory" or self._root is None:
            return None
        return self._root / self._stamp

    def _candidates(self, source: Path) -> Iterable[Path]:
        if self._layout == "directory":
            assert self._root is not None
            base = self._root / self._stamp / source.name
        else:
            base = source.with_name(f"{source.name}.bak")
        yield base
        n = 1
        while True:
            yield base.with_name(f"{base.name}.{n}")
            n += 1

    def write(self, unit: SourceUnit) -> Backup:
        """Persist ``unit.raw`` and confirm it reads back identical.

        Raises:
            BackupError: The backup could not be written or verified.
        """
        target: Path | None = None
        try:
            for candidate in self._candidates(unit.path):
                candidate.parent.mkdir(parents=True, exist_ok=True)
                try:
                    with candidate.open("xb") as f:
                        target = candidate
                        f.write(unit.raw)
                        f.flush()
                        os.fsync(f.fileno())
                except FileExistsError:
                    continue
                break
            assert target is not None
            _fsync_dir(target.parent)
            readback = target.read_bytes()
        except OSError as e:
            if target is not None:
                target.unlink(missing_ok=True)
            backup_path = str(target) if target is not None else ""
            raise BackupError.write_failed(str(unit.path), backup_path, str(e)) from e

        if readback != unit.raw:
            raise BackupError.verify_failed(str(unit.path), str(target))

        backup = Backup(source=unit.path, path=target, digest=_hash_bytes(readback))
        logger.debug("backup_written", path=str(unit.path), backup=str(target))
        return backup


class SafeRewriter:
    """Applies the fix policy to one file at a time."""

    def __init__(self, policy: FixPolicy, backups: BackupWriter, *, dry_run: bool = False) -> None:
        self._policy = policy
        self._backups = backups
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def rewrite(self, unit: SourceUnit, mismatches: Iterable[Mismatch]) -> RewriteResult:
        """Fix what the policy allows, flag the rest.

        Nothing is written when no fix changes the text, or in dry-run mode;
        ``applied`` then lists what would have been fixed.

        Raises:
            BackupError: Backup failed; the file is untouched.
            RewriteError: Backup succeeded but the file could not be replaced.
        """
        fixable, flagged = self._policy.split(mismatches)
        result = RewriteResult(path=str(unit.path), flagged=flagged, dry_run=self._dry_run)

        seen: set[tuple[str, bool]] = set()
        wiring: list[Mismatch] = []
        for mismatch in fixable:
            assert mismatch.canonical is not None
            if mismatch.ref_kind == "client":
                wiring.append(mismatch)
                continue
            key = (mismatch.name if mismatch.exact_case else mismatch.name.lower(), mismatch.exact_case)
            if key in seen:
                continue
            seen.add(key)
            content, count = substitute(
                unit.content, mismatch.name, mismatch.canonical, exact_case=mismatch.exact_case
            )
            if not count:
                continue
            unit.content = content
            unit.modified = True
            result.applied.append(AppliedFix(mismatch.kind, mismatch.name, mismatch.canonical, count))

        if wiring:
            self._rewire(unit, wiring, result)

        if not unit.modified:
            return result

        new_bytes = unit.content.encode("utf-8")
        result.old_hash = _hash_bytes(unit.raw)
        result.new_hash = _hash_bytes(new_bytes)
        if self._dry_run:
            return result

        result.backup = self._backups.write(unit)
        _replace_atomic(unit.path, new_bytes)
        result.written = True
        logger.info(
            "file_rewritten",
            path=str(unit.path),
            fixes=len(result.applied),
            backup=str(result.backup.path),
        )
        return result

    def _rewire(self, unit: SourceUnit, wiring: list[Mismatch], result: RewriteResult) -> None:
        """Switch ``unit`` to the shared client; mismatches the edit leaves open are flagged."""
        edit = adopt_shared_client(unit.content)
        for mismatch in wiring:
            assert mismatch.canonical is not None
            count = edit.removed if mismatch.kind is MismatchKind.OWN_CLIENT else int(edit.injected)
            if count:
                result.applied.append(AppliedFix(mismatch.kind, mismatch.name, mismatch.canonical, count))
            else:
                result.flagged.append(mismatch)
        if edit.changed:
            unit.content = edit.content
            unit.modified = True


def _replace_atomic(path: Path, data: bytes) -> None:
    tmp = path.with_name(f".{path.name}.routesync-tmp")
    try:
        with tmp.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise RewriteError.write_failed(str(path), str(e)) from e


def _fsync_dir(directory: Path) -> None:
    if not hasattr(os, "O_DIRECTORY"):
        return
    fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _hash_bytes(data: bytes) -> str:
    """Hash content for change tracking."""
    return hashlib.sha256(data).hexdigest()[:12]
