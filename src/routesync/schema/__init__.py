"""Live schema introspection."""

from routesync.schema.introspect import (
    CatalogIntrospector,
    RestIntrospector,
    SchemaIntrospector,
    open_introspector,
    resolve_strategy,
)
from routesync.schema.snapshot import SchemaSnapshot

__all__ = [
    "CatalogIntrospector",
    "RestIntrospector",
    "SchemaIntrospector",
    "SchemaSnapshot",
    "open_introspector",
    "resolve_strategy",
]
