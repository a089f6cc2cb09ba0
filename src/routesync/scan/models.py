"""Data models for static scanning of route sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

RefKind = Literal["table", "column"]

# Surface form a reference was found through.
Idiom = Literal[
    "from_call",  # supabase.from('orders')
    "sql_from",  # FROM orders / FROM "Orders"
    "sql_join",  # JOIN users u
    "sql_into",  # INSERT INTO orders
    "sql_update",  # UPDATE orders SET
    "select_list",  # .select('id,total,users(id)')
    "sql_select",  # SELECT o.id, total FROM orders o
    "member_access",  # o.total, where o resolves to a table
]


@dataclass(frozen=True, slots=True)
class Reference:
    """A table or column mention in route source.

    ``table`` is the raw name of the table a column reference is tied to,
    or None when it could not be tied to one. ``embedded`` marks a
    ``.select()`` entry that carried a nested sub-list, which may name a
    related table rather than a column.
    """

    kind: RefKind
    name: str
    line: int
    idiom: Idiom
    table: str | None = None
    embedded: bool = False


@dataclass(frozen=True, slots=True)
class RouteOperation:
    """One HTTP operation declared by a route module."""

    method: str
    path: str
    line: int


@dataclass
class RouteManifest:
    """Static declaration of a route module: resource name and operations."""

    resource: str
    path: str
    operations: list[RouteOperation] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "resource": self.resource,
            "path": self.path,
            "operations": [
                {"method": op.method, "path": op.path, "line": op.line} for op in self.operations
            ],
        }


@dataclass(frozen=True, slots=True)
class WiringFlags:
    """How a route module obtains its data-API client.

    The line fields locate the first ``createClient(`` call and the first
    client use, None when absent.
    """

    has_dotenv: bool
    has_create_client: bool
    uses_shared_client: bool
    uses_client: bool
    client_undefined: bool
    create_client_line: int | None = None
    client_use_line: int | None = None

    def to_dict(self) -> dict[str, bool]:
        return {
            "has_dotenv": self.has_dotenv,
            "has_create_client": self.has_create_client,
            "uses_shared_client": self.uses_shared_client,
            "uses_client": self.uses_client,
            "client_undefined": self.client_undefined,
        }
