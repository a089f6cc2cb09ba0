"""Client wiring audit: how a route module gets its data-API client."""

from __future__ import annotations

import re

from routesync.scan.extractor import blank_comments
from routesync.scan.models import WiringFlags

_DOTENV = re.compile(r"require\(\s*['\"`]dotenv['\"`]\s*\)|from\s+['\"]dotenv['\"]")
_CREATE_CLIENT = re.compile(r"\bcreateClient\s*\(")
_SHARED_CLIENT = re.compile(
    r"require\(\s*['\"`][./]*(?:supabaseClient|supabase)['\"`]\s*\)|\bgetSupabase\s*\("
)
_CLIENT_USE = re.compile(r"(?<![\w$.])supabase\s*\.")
_CLIENT_DECL = re.compile(
    r"\b(?:const|let|var)\s+(?:supabase\b|\{[^}]*\bsupabase\b[^}]*\})"
    r"|\bfunction\s*\w*\s*\([^)]*\bsupabase\b"
    r"|\(\s*supabase\s*[,)]"
)


def audit_wiring(content: str) -> WiringFlags:
    """Flags for ``content``; commented-out code does not count."""
    code = blank_comments(content)
    use = _CLIENT_USE.search(code)
    create = _CREATE_CLIENT.search(code)
    return WiringFlags(
        has_dotenv=bool(_DOTENV.search(code)),
        has_create_client=create is not None,
        uses_shared_client=bool(_SHARED_CLIENT.search(code)),
        uses_client=use is not None,
        client_undefined=use is not None and not _CLIENT_DECL.search(code),
        create_client_line=_line_of(code, create.start()) if create else None,
        client_use_line=_line_of(code, use.start()) if use else None,
    )


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1
