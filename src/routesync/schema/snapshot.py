"""Immutable snapshot of the live schema for one run."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class SchemaSnapshot:
    """Tables and columns as currently live in the database.

    Keys of ``tables`` are lowercase table names. The exact-case spelling of
    each table (the canonical form) is kept separately so that case
    mismatches can be corrected towards it.
    """

    source: str
    _variants: Mapping[str, tuple[str, ...]] = field(repr=False)
    _columns: Mapping[str, frozenset[str]] = field(repr=False)

    @classmethod
    def from_rows(cls, rows: Iterable[tuple[str, str | None]], *, source: str) -> SchemaSnapshot:
        """Build a snapshot from (table_name, column_name) pairs.

        A ``None`` column registers a table without columns.
        """
        columns: dict[str, set[str]] = {}
        for table, column in rows:
            cols = columns.setdefault(table, set())
            if column is not None:
                cols.add(column)

        variants: dict[str, list[str]] = {}
        for table in columns:
            variants.setdefault(table.lower(), []).append(table)

        return cls(
            source=source,
            _variants=MappingProxyType({k: tuple(sorted(v)) for k, v in variants.items()}),
            _columns=MappingProxyType({k: frozenset(v) for k, v in columns.items()}),
        )

    def __len__(self) -> int:
        return len(self._variants)

    def __contains__(self, table: object) -> bool:
        return isinstance(table, str) and table.lower() in self._variants

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._variants))

    @property
    def tables(self) -> Mapping[str, frozenset[str]]:
        """Lowercase table name -> column names."""
        return MappingProxyType(
            {
                key: frozenset().union(*(self._columns[name] for name in names))
                for key, names in self._variants.items()
            }
        )

    def canonical_table(self, name: str) -> str | None:
        """Exact-case catalog name for ``name``, or None if unknown.

        Several catalog tables may share a lowercase form; the exact-case
        match wins, else the first lexicographically.
        """
        names = self._variants.get(name.lower())
        if not names:
            return None
        if name in names:
            return name
        return names[0]

    def variants(self, name: str) -> tuple[str, ...]:
        """Every catalog spelling sharing the lowercase form of ``name``."""
        return self._variants.get(name.lower(), ())

    def columns(self, table: str) -> frozenset[str]:
        canonical = self.canonical_table(table)
        if canonical is None:
            return frozenset()
        return self._columns[canonical]

    def canonical_column(self, table: str, column: str) -> str | None:
        """Exact-case column name of ``table``, or None if the table lacks it."""
        cols = self.columns(table)
        if column in cols:
            return column
        lowered = column.lower()
        matches = sorted(c for c in cols if c.lower() == lowered)
        return matches[0] if matches else None

    def tables_with_column(self, column: str) -> list[str]:
        """Canonical names of every table having ``column`` (case-insensitive)."""
        lowered = column.lower()
        return sorted(
            table
            for table, cols in self._columns.items()
            if any(c.lower() == lowered for c in cols)
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {table: sorted(cols) for table, cols in sorted(self._columns.items())}
