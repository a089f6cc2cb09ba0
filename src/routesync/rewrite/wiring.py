"""Client wiring rewrite: move a route module onto the shared client accessor.

A module that builds its own client loses its ``const supabase =
createClient(...)`` declaration and any ``if (...) { throw ... }`` guard on
missing credentials; the ``createClient`` import goes too once nothing calls
it. A module left using a client it no longer declares gets the shared
accessor injected after its leading ``require`` block.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from routesync.scan.wiring import audit_wiring

SHARED_CLIENT_LINES = (
    "const { getSupabase } = require('../supabaseClient');",
    "const supabase = getSupabase();",
)

_OWN_CLIENT_DECL = re.compile(
    r"^[ \t]*(?:const|let|var)\s+supabase\s*=\s*"
    r"createClient\s*\((?:[^;()]|\([^;()]*\))*\)[ \t]*;?[ \t]*(?:\r?\n)?",
    re.MULTILINE,
)
_CREDENTIAL_GUARD = re.compile(
    r"^[ \t]*if\s*\([^)]*supabase[^)]*\)\s*\{\s*throw\b[^}]*\}[ \t]*(?:\r?\n)?",
    re.IGNORECASE | re.MULTILINE,
)
_CREATE_CLIENT_IMPORT = re.compile(
    r"^[ \t]*(?:const|let|var)\s*\{\s*createClient\s*\}\s*=\s*"
    r"require\(\s*['\"]@supabase/supabase-js['\"]\s*\)[ \t]*;?[ \t]*(?:\r?\n)?",
    re.MULTILINE,
)
_CREATE_CLIENT_CALL = re.compile(r"\bcreateClient\s*\(")
_REQUIRE_LINE = re.compile(r"^\s*(?:(?:const|let|var)\s+.*)?\brequire\s*\(")


@dataclass(frozen=True, slots=True)
class WiringEdit:
    """Result of ``adopt_shared_client``.

    ``removed`` counts the own-client constructs taken out; ``injected`` is
    set when the shared accessor lines were added.
    """

    content: str
    removed: int = 0
    injected: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.removed) or self.injected


def adopt_shared_client(content: str) -> WiringEdit:
    """Rewrite ``content`` to obtain its client from the shared accessor.

    Applying it to its own output changes nothing.
    """
    content, decls = _OWN_CLIENT_DECL.subn("", content)
    removed = decls
    if decls:
        content, guards = _CREDENTIAL_GUARD.subn("", content)
        removed += guards
    if not _CREATE_CLIENT_CALL.search(content):
        content, imports = _CREATE_CLIENT_IMPORT.subn("", content)
        removed += imports

    if not audit_wiring(content).client_undefined:
        return WiringEdit(content, removed)

    newline = "\r\n" if "\r\n" in content else "\n"
    at = _after_leading_requires(content)
    lead = newline if at and not content[:at].endswith("\n") else ""
    block = lead + newline.join(SHARED_CLIENT_LINES) + newline
    return WiringEdit(content[:at] + block + content[at:], removed, injected=True)


def _after_leading_requires(content: str) -> int:
    """Offset just past the last ``require`` line of the module's leading block.

    Blank lines inside the block are skipped; 0 when the module does not
    start with requires.
    """
    offset = end = 0
    for line in content.splitlines(keepends=True):
        if _REQUIRE_LINE.match(line):
            end = offset + len(line)
        elif line.strip():
            break
        offset += len(line)
    return end
