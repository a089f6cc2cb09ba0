"""Static route manifest.

Enumerates the HTTP operations a route module declares by reading its
source, so the module never has to be loaded (no load-time side effects,
no database clients created during analysis).
"""

from __future__ import annotations

import bisect
import re
from pathlib import Path

from routesync.scan.extractor import blank_comments, string_end
from routesync.scan.models import RouteManifest, RouteOperation

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head", "all")
_METHODS = "|".join(HTTP_METHODS)

_DIRECT = re.compile(
    rf"(?<![\w$.])(?:\w*[Rr]outer|app)\s*\.\s*(?P<method>{_METHODS})\s*\(\s*"
    r"(?P<q>['\"`])(?P<path>[^'\"`]*)(?P=q)"
)
_ROUTE = re.compile(
    r"(?<![\w$.])(?:\w*[Rr]outer|app)\s*\.\s*route\s*\(\s*(?P<q>['\"`])(?P<path>[^'\"`]*)(?P=q)\s*\)"
)
_CHAINED = re.compile(rf"\.\s*(?P<method>{_METHODS})\s*\(")


def build_manifest(path: Path, content: str) -> RouteManifest:
    """Manifest for one route module; the resource name is the file stem.

    Commented-out declarations are ignored.
    """
    starts = [0] + [m.end() for m in re.finditer(r"\n", content)]

    def line_of(offset: int) -> int:
        return bisect.bisect_right(starts, offset)

    code = blank_comments(content)
    found: list[tuple[int, RouteOperation]] = []
    for m in _DIRECT.finditer(code):
        op = RouteOperation(m.group("method").upper(), m.group("path"), line_of(m.start()))
        found.append((m.start(), op))

    for m in _ROUTE.finditer(code):
        for offset, method in _chained_methods(code, m.end()):
            found.append((offset, RouteOperation(method.upper(), m.group("path"), line_of(offset))))

    found.sort(key=lambda item: item[0])
    return RouteManifest(resource=path.stem, path=str(path), operations=[op for _, op in found])


def _chained_methods(code: str, pos: int) -> list[tuple[int, str]]:
    """Methods chained onto ``router.route(...)`` from ``pos`` on.

    Only ``.method(`` at the chain's own level counts; handler bodies are
    skipped as balanced parentheses, so calls nested inside them (and any
    ``;`` they contain) do not end or extend the chain.
    """
    methods: list[tuple[int, str]] = []
    n = len(code)
    i = pos
    while True:
        while i < n and code[i].isspace():
            i += 1
        c = _CHAINED.match(code, i)
        if c is None:
            return methods
        methods.append((c.start(), c.group("method")))
        i = _skip_call(code, c.end())


def _skip_call(code: str, i: int) -> int:
    """Offset just past the ``)`` closing a call whose ``(`` ends before ``i``."""
    depth, n = 1, len(code)
    while i < n and depth:
        ch = code[i]
        if ch in "'\"`":
            i = string_end(code, i)
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        i += 1
    return i
