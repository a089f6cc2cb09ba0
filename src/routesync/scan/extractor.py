"""Reference extraction from route source text.

Route modules mix three data-access idioms in the same file: fluent data-API
calls, raw parameterized SQL, and legacy string-templated SQL. Extraction is
idiom-agnostic and over-matches on purpose; the differ filters the noise.
Comments are blanked out before any pass runs.

Recognized forms:
- ``<client>.from('<table>')`` with any quote style
- ``FROM``/``JOIN``/``INSERT INTO``/``UPDATE`` in SQL string literals,
  bare or quoted, optionally schema-qualified, with an optional alias
- ``.select('<col>, <col>, <rel>(<nested>)')`` column lists
- ``SELECT <col>, <alias>.<col> FROM ...`` column lists
- ``<alias>.<column>`` where the alias already resolved to a table
"""

from __future__ import annotations

import bisect
import re
from collections.abc import Iterator
from dataclasses import dataclass

from routesync.scan.models import Idiom, Reference

IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_IDENT_RE = re.compile(IDENT)

# Words that can follow FROM/JOIN/INTO/UPDATE or sit in alias position
# without being identifiers.
SQL_KEYWORDS = frozenset(
    {
        "ALL", "AND", "AS", "ASC", "BY", "CASE", "CROSS", "CURRENT_DATE",
        "CURRENT_TIMESTAMP", "DEFAULT", "DESC", "DISTINCT", "DO", "ELSE", "END",
        "EXCEPT", "EXISTS", "FALSE", "FETCH", "FOR", "FROM", "FULL", "GROUP",
        "HAVING", "IN", "INNER", "INTERSECT", "INTO", "IS", "JOIN", "LATERAL",
        "LEFT", "LIKE", "LIMIT", "NATURAL", "NOT", "NOTHING", "NOWAIT", "NULL",
        "OF", "OFFSET", "ON", "ONLY", "OR", "ORDER", "OUTER", "OVER", "RETURNING",
        "RIGHT", "ROWS", "SELECT", "SET", "SKIP", "TABLE", "THEN", "TRUE", "UNION",
        "UNNEST", "UPDATE", "USING", "VALUES", "WHEN", "WHERE", "WINDOW", "WITH",
    }
)

# FROM inside these calls is not a table clause: EXTRACT(YEAR FROM created_at)
_FROM_FUNCTIONS = frozenset({"EXTRACT", "SUBSTRING", "TRIM", "POSITION", "OVERLAY"})

_JS_MEMBER_DENYLIST = frozenset({"length", "prototype", "constructor"})

_KEYWORD_IDIOM: dict[str, Idiom] = {
    "FROM": "sql_from",
    "JOIN": "sql_join",
    "INTO": "sql_into",
    "UPDATE": "sql_update",
}

_FROM_CALL = re.compile(
    rf"\.from\s*\(\s*(?P<q>['\"`])(?P<name>{IDENT})(?P=q)\s*\)"
)
_SELECT_CALL = re.compile(r"\.select\s*\(\s*(?P<q>['\"`])(?P<body>.*?)(?P=q)", re.DOTALL)
_TABLE_KEYWORD = re.compile(r"\b(?P<kw>FROM|JOIN|INTO|UPDATE)\s+", re.IGNORECASE)
_NAME_TOKEN = re.compile(
    rf'\\?"(?P<dq>{IDENT})\\?"|`(?P<bq>{IDENT})`|(?P<bare>{IDENT})'
)
_ALIAS = re.compile(rf"\s+(?:AS\s+)?(?P<alias>{IDENT})", re.IGNORECASE)
_SQL_SELECT = re.compile(r"\bSELECT\s+(?P<cols>.*?)\s+FROM\s", re.IGNORECASE | re.DOTALL)
_MEMBER = re.compile(rf"(?<![\w$.])(?P<obj>{IDENT})\.(?P<prop>{IDENT})\b(?!\s*\()")

# A literal is treated as SQL when it has a statement shape, or starts with
# an upper-case clause keyword (fragment of a concatenated query).
_SQL_SHAPE = re.compile(
    r"\bSELECT\b[\s\S]*\bFROM\b|\bINSERT\s+INTO\b|\bUPDATE\s+\S+\s+SET\b|\bDELETE\s+FROM\b",
    re.IGNORECASE,
)
_SQL_FRAGMENT = re.compile(
    r"^\s*\(?\s*(?:FROM|JOIN|LEFT|RIGHT|INNER|FULL|CROSS|WHERE|ORDER BY|GROUP BY)\b"
)


@dataclass(frozen=True, slots=True)
class _TableHit:
    name: str
    offset: int
    keyword_offset: int
    idiom: Idiom
    alias: str | None


class _LineIndex:
    """Offset -> 1-based line number."""

    def __init__(self, content: str) -> None:
        self._starts = [0] + [m.end() for m in re.finditer(r"\n", content)]

    def line(self, offset: int) -> int:
        return bisect.bisect_right(self._starts, offset)


def extract_references(content: str) -> list[Reference]:
    """Return every table and column reference found in ``content``.

    Case is preserved. Column references carry the raw name of the table
    they were tied to, when one could be determined.
    """
    content = blank_comments(content)
    lines = _LineIndex(content)
    refs: list[Reference] = []
    # lowercase alias or table name -> raw table name
    aliases: dict[str, str] = {}

    from_calls = list(_FROM_CALL.finditer(content))
    for m in from_calls:
        name = m.group("name")
        refs.append(Reference("table", name, lines.line(m.start("name")), "from_call"))
        aliases.setdefault(name.lower(), name)

    for m in _SELECT_CALL.finditer(content):
        table = _chained_from_table(content, from_calls, m.start())
        body_offset = m.start("body")
        for offset, item in _split_top_level(m.group("body")):
            parsed = _parse_select_item(item)
            if parsed is None:
                continue
            name, embedded = parsed
            refs.append(
                Reference(
                    "column",
                    name,
                    lines.line(body_offset + offset),
                    "select_list",
                    table=table,
                    embedded=embedded,
                )
            )

    for literal_offset, body in _string_literals(content):
        if not _looks_like_sql(body):
            continue
        hits = _scan_sql_tables(body)
        local_aliases: dict[str, str] = {}
        for hit in hits:
            refs.append(Reference("table", hit.name, lines.line(literal_offset + hit.offset), hit.idiom))
            aliases.setdefault(hit.name.lower(), hit.name)
            local_aliases.setdefault(hit.name.lower(), hit.name)
            if hit.alias:
                aliases[hit.alias.lower()] = hit.name
                local_aliases[hit.alias.lower()] = hit.name

        for m in _SQL_SELECT.finditer(body):
            from_table = next((h.name for h in hits if h.keyword_offset >= m.end("cols")), None)
            cols_offset = m.start("cols")
            for offset, item in _split_top_level(m.group("cols")):
                parsed = _parse_sql_select_item(item)
                if parsed is None:
                    continue
                qualifier, name = parsed
                table = local_aliases.get(qualifier.lower()) if qualifier else from_table
                refs.append(
                    Reference(
                        "column",
                        name,
                        lines.line(literal_offset + cols_offset + offset),
                        "sql_select",
                        table=table,
                    )
                )

    for m in _MEMBER.finditer(content):
        table = aliases.get(m.group("obj").lower())
        prop = m.group("prop")
        if table is None or prop in _JS_MEMBER_DENYLIST:
            continue
        refs.append(Reference("column", prop, lines.line(m.start("prop")), "member_access", table=table))

    refs.sort(key=lambda r: r.line)
    return refs


def tables_used(refs: list[Reference]) -> list[str]:
    """Distinct table names (first spelling wins), in order of appearance."""
    seen: dict[str, str] = {}
    for ref in refs:
        if ref.kind == "table":
            seen.setdefault(ref.name.lower(), ref.name)
    return list(seen.values())


def columns_used(refs: list[Reference]) -> list[str]:
    seen: dict[str, str] = {}
    for ref in refs:
        if ref.kind == "column":
            seen.setdefault(ref.name.lower(), ref.name)
    return list(seen.values())


def blank_comments(content: str) -> str:
    """``content`` with every ``//`` and ``/* */`` comment replaced by spaces.

    Offsets and newlines are preserved, so line numbers computed on the
    result are those of the original. Comment markers inside string
    literals are left alone.
    """
    out = list(content)
    i, n = 0, len(content)
    while i < n:
        ch = content[i]
        if ch == "/" and content.startswith("//", i):
            j = content.find("\n", i)
            j = n if j == -1 else j
        elif ch == "/" and content.startswith("/*", i):
            j = content.find("*/", i + 2)
            j = n if j == -1 else j + 2
        elif ch in "'\"`":
            i = string_end(content, i) + 1
            continue
        else:
            i += 1
            continue
        for k in range(i, j):
            if out[k] != "\n":
                out[k] = " "
        i = j
    return "".join(out)


def string_end(content: str, start: int) -> int:
    """Offset of the quote closing the literal opened at ``start``.

    Unterminated single-line strings end at the newline.
    """
    quote = content[start]
    j, n = start + 1, len(content)
    while j < n and content[j] != quote:
        if content[j] == "\\":
            j += 2
            continue
        if content[j] == "\n" and quote != "`":
            break
        j += 1
    return min(j, n)


def _string_literals(content: str) -> Iterator[tuple[int, str]]:
    """Yield (body offset, body) of every JS string and template literal.

    Expects comment-free text, see ``blank_comments``.
    """
    i, n = 0, len(content)
    while i < n:
        if content[i] in "'\"`":
            j = string_end(content, i)
            yield i + 1, content[i + 1 : j]
            i = j + 1
            continue
        i += 1


def _looks_like_sql(body: str) -> bool:
    return bool(_SQL_SHAPE.search(body) or _SQL_FRAGMENT.match(body))


def _read_name(body: str, pos: int) -> tuple[str, int, int] | None:
    """Read an optionally schema-qualified name at ``pos``.

    Returns (table part, offset of table part, end offset).
    """
    m = _NAME_TOKEN.match(body, pos)
    if m is None:
        return None
    group = m.lastgroup or "bare"
    name, start, end = m.group(group), m.start(group), m.end()
    if body.startswith(".", end):
        m2 = _NAME_TOKEN.match(body, end + 1)
        if m2 is not None:
            group = m2.lastgroup or "bare"
            name, start, end = m2.group(group), m2.start(group), m2.end()
    return name, start, end


def _enclosing_function(body: str, pos: int) -> str | None:
    """Name of the call whose parentheses enclose ``pos``, if any."""
    depth = 0
    i = pos - 1
    while i >= 0:
        ch = body[i]
        if ch == ")":
            depth += 1
        elif ch == "(":
            if depth == 0:
                m = re.search(rf"({IDENT})\s*$", body[:i])
                return m.group(1).upper() if m else None
            depth -= 1
        i -= 1
    return None


def _scan_sql_tables(body: str) -> list[_TableHit]:
    hits: list[_TableHit] = []
    for kw_match in _TABLE_KEYWORD.finditer(body):
        keyword = kw_match.group("kw").upper()
        if keyword == "FROM":
            if re.search(r"\bDISTINCT\s*$", body[: kw_match.start()], re.IGNORECASE):
                continue
            if _enclosing_function(body, kw_match.start()) in _FROM_FUNCTIONS:
                continue

        pos = kw_match.end()
        while True:
            read = _read_name(body, pos)
            if read is None:
                break
            name, start, end = read
            if name.upper() in SQL_KEYWORDS:
                break
            # FROM unnest(...) is a function; INSERT INTO t (a, b) lists columns
            if keyword != "INTO" and body.startswith("(", end):
                break
            alias = None
            alias_match = _ALIAS.match(body, end)
            if alias_match and alias_match.group("alias").upper() not in SQL_KEYWORDS:
                alias = alias_match.group("alias")
                end = alias_match.end()
            hits.append(_TableHit(name, start, kw_match.start(), _KEYWORD_IDIOM[keyword], alias))

            # FROM a, b, c
            comma = re.match(r"\s*,\s*", body[end:])
            if keyword != "FROM" or comma is None:
                break
            pos = end + comma.end()
    return hits


def _split_top_level(text: str) -> list[tuple[int, str]]:
    """Split on commas outside parentheses, keeping each item's offset."""
    items: list[tuple[int, str]] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            items.append(_strip_item(text, start, i))
            start = i + 1
    items.append(_strip_item(text, start, len(text)))
    return [item for item in items if item[1]]


def _strip_item(text: str, start: int, end: int) -> tuple[int, str]:
    raw = text[start:end]
    stripped = raw.lstrip()
    return start + (len(raw) - len(stripped)), stripped.rstrip()


def _parse_select_item(item: str) -> tuple[str, bool] | None:
    """``users(id,name)`` -> ("users", True); ``alias:total::text`` -> ("total", False)."""
    if item == "*" or item.startswith("..."):
        return None
    embedded = "(" in item
    name = item.split("(", 1)[0]
    name = name.split("::", 1)[0]
    if ":" in name:
        name = name.split(":", 1)[1]
    name = name.split("!", 1)[0].strip()
    if not _IDENT_RE.fullmatch(name):
        return None
    return name, embedded


def _parse_sql_select_item(item: str) -> tuple[str | None, str] | None:
    """``o.total AS t`` -> ("o", "total"); functions, literals and ``*`` -> None."""
    item = re.sub(r"^(?:DISTINCT|ALL)\s+", "", item, flags=re.IGNORECASE)
    if not item or "(" in item or item.endswith("*"):
        return None
    expr = re.split(r"\s+", item, maxsplit=1)[0]
    if not expr or expr[0] in "'0123456789$@:?\\":
        return None
    parts = [part.strip('"`\\') for part in expr.split(".")]
    if not all(_IDENT_RE.fullmatch(part) for part in parts):
        return None
    name = parts[-1]
    if name.upper() in SQL_KEYWORDS:
        return None
    qualifier = parts[-2] if len(parts) > 1 else None
    return qualifier, name


def _chained_from_table(content: str, from_calls: list[re.Match[str]], pos: int) -> str | None:
    """Table of the nearest ``.from()`` earlier in the same statement chain."""
    for m in reversed(from_calls):
        if m.end() > pos:
            continue
        if ";" in content[m.end() : pos]:
            return None
        return m.group("name")
    return None
