"""Schema introspection against the live database.

Two strategies, since deployments may restrict one of them:

- catalog: direct SQL connection (SQLAlchemy). PostgreSQL is read through
  ``information_schema.columns``; other dialects through the SQLAlchemy
  Inspector on the same connection.
- rest: the PostgREST/Supabase data API, reading ``information_schema.columns``
  through the ``Accept-Profile`` header.

Introspectors receive their connection/client at construction.
``open_introspector`` owns the lifecycle and releases it on every exit path.
Failures are never retried and never yield a partial snapshot.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

import httpx
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError

from routesync.config.models import CatalogConfig
from routesync.core.errors import ConfigError, SchemaFetchError
from routesync.core.logging import get_logger
from routesync.schema.snapshot import SchemaSnapshot

log = get_logger("schema")

_INFORMATION_SCHEMA_QUERY = text(
    """
    SELECT table_name, column_name
    FROM information_schema.columns
    WHERE table_schema = :schema
    ORDER BY table_name, ordinal_position
    """
)

REST_PAGE_SIZE = 1000


class SchemaIntrospector(Protocol):
    """Anything that can produce a SchemaSnapshot."""

    source: str

    def fetch(self) -> SchemaSnapshot: ...


class CatalogIntrospector:
    """Reads the catalog over a SQLAlchemy connection."""

    source = "catalog"

    def __init__(self, connection: Connection, *, schema_name: str = "public") -> None:
        self._connection = connection
        self._schema_name = schema_name

    def fetch(self) -> SchemaSnapshot:
        dialect = self._connection.dialect.name
        try:
            if dialect == "postgresql":
                rows = self._query_information_schema()
            else:
                rows = self._inspect()
        except SQLAlchemyError as e:
            raise SchemaFetchError.query_failed(self.source, str(e)) from e

        snapshot = SchemaSnapshot.from_rows(rows, source=self.source)
        if not len(snapshot):
            raise SchemaFetchError.empty(self.source, self._schema_name)
        log.info("schema_fetched", source=self.source, dialect=dialect, tables=len(snapshot))
        return snapshot

    def _query_information_schema(self) -> list[tuple[str, str | None]]:
        result = self._connection.execute(_INFORMATION_SCHEMA_QUERY, {"schema": self._schema_name})
        return [(row[0], row[1]) for row in result]

    def _inspect(self) -> list[tuple[str, str | None]]:
        inspector = inspect(self._connection)
        # Dialects without the configured namespace (SQLite only has "main")
        # fall back to the connection's default schema.
        schema = self._schema_name if self._schema_name in inspector.get_schema_names() else None
        rows: list[tuple[str, str | None]] = []
        for table in inspector.get_table_names(schema=schema):
            columns = inspector.get_columns(table, schema=schema)
            if not columns:
                rows.append((table, None))
            rows.extend((table, col["name"]) for col in columns)
        return rows


class RestIntrospector:
    """Reads ``information_schema.columns`` through the data API."""

    source = "rest"

    def __init__(
        self,
        client: httpx.Client,
        *,
        schema_name: str = "public",
        page_size: int = REST_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._schema_name = schema_name
        self._page_size = page_size

    def fetch(self) -> SchemaSnapshot:
        rows: list[tuple[str, str | None]] = []
        offset = 0
        while True:
            page = self._fetch_page(offset)
            rows.extend(page)
            if len(page) < self._page_size:
                break
            offset += self._page_size

        snapshot = SchemaSnapshot.from_rows(rows, source=self.source)
        if not len(snapshot):
            raise SchemaFetchError.empty(self.source, self._schema_name)
        log.info("schema_fetched", source=self.source, tables=len(snapshot))
        return snapshot

    def _fetch_page(self, offset: int) -> list[tuple[str, str | None]]:
        try:
            response = self._client.get(
                "/rest/v1/columns",
                params={
                    "select": "table_name,column_name",
                    "table_schema": f"eq.{self._schema_name}",
                    "order": "table_name,ordinal_position",
                    "limit": str(self._page_size),
                    "offset": str(offset),
                },
                headers={"Accept-Profile": "information_schema"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SchemaFetchError.query_failed(
                self.source, f"HTTP {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise SchemaFetchError.connection_failed(self.source, str(e)) from e

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise SchemaFetchError.bad_payload(self.source, f"invalid JSON: {e}") from e
        if not isinstance(payload, list):
            raise SchemaFetchError.bad_payload(self.source, f"expected a list, got {type(payload).__name__}")

        rows: list[tuple[str, str | None]] = []
        for item in payload:
            if not isinstance(item, dict) or "table_name" not in item:
                raise SchemaFetchError.bad_payload(self.source, f"row without table_name: {item!r}")
            rows.append((item["table_name"], item.get("column_name")))
        return rows


def resolve_strategy(config: CatalogConfig) -> str:
    """Pick catalog or rest; auto prefers a direct database connection."""
    if config.strategy != "auto":
        return config.strategy
    if config.database_url:
        return "catalog"
    if config.rest_url:
        return "rest"
    raise ConfigError.missing_required("catalog.database_url")


def _connect_args(database_url: str, timeout_sec: float) -> dict[str, Any]:
    backend = make_url(database_url).get_backend_name()
    if backend == "postgresql":
        return {"connect_timeout": max(1, int(timeout_sec))}
    if backend == "sqlite":
        return {"timeout": timeout_sec}
    return {}


@contextmanager
def open_catalog_introspector(config: CatalogConfig) -> Iterator[CatalogIntrospector]:
    if not config.database_url:
        raise ConfigError.missing_required("catalog.database_url")
    try:
        engine = create_engine(
            config.database_url,
            connect_args=_connect_args(config.database_url, config.timeout_sec),
        )
    except (ArgumentError, NoSuchModuleError, ImportError) as e:
        raise SchemaFetchError.connection_failed("catalog", str(e)) from e

    try:
        try:
            connection = engine.connect()
        except SQLAlchemyError as e:
            raise SchemaFetchError.connection_failed("catalog", str(e)) from e
        with connection:
            yield CatalogIntrospector(connection, schema_name=config.schema_name)
    finally:
        engine.dispose()


@contextmanager
def open_rest_introspector(config: CatalogConfig) -> Iterator[RestIntrospector]:
    if not config.rest_url:
        raise ConfigError.missing_required("catalog.rest_url")
    if not config.rest_key:
        raise ConfigError.missing_required("catalog.rest_key")
    client = httpx.Client(
        base_url=config.rest_url.rstrip("/"),
        headers={
            "apikey": config.rest_key,
            "Authorization": f"Bearer {config.rest_key}",
        },
        timeout=config.timeout_sec,
    )
    with client:
        yield RestIntrospector(client, schema_name=config.schema_name)


@contextmanager
def open_introspector(config: CatalogConfig) -> Iterator[SchemaIntrospector]:
    """Acquire a client for the configured strategy and release it on exit.

    Raises:
        ConfigError: The strategy's connection settings are missing.
        SchemaFetchError: The client could not be created or connected.
    """
    strategy = resolve_strategy(config)
    log.debug("introspector_open", strategy=strategy, schema=config.schema_name)
    if strategy == "catalog":
        with open_catalog_introspector(config) as catalog:
            yield catalog
    else:
        with open_rest_introspector(config) as rest:
            yield rest
