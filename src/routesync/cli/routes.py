"""routesync routes command - static route manifest."""

import json

import click

from routesync.audit import discover_route_files, make_manifest_table
from routesync.cli.utils import load_cli_config
from routesync.config import resolve_routes_dir
from routesync.core.errors import ConfigError, ScanError
from routesync.core.progress import get_console, pluralize, status
from routesync.rewrite.ops import SourceUnit
from routesync.scan.manifest import build_manifest
from routesync.scan.models import RouteManifest


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def routes_command(ctx: click.Context, as_json: bool) -> None:
    """List the HTTP operations each route module declares.

    Route modules are read, never loaded or executed.
    """
    config = load_cli_config(ctx)
    routes_dir = resolve_routes_dir(config)
    try:
        files = discover_route_files(routes_dir, config.routes)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    manifests: list[RouteManifest] = []
    for path in files:
        try:
            unit = SourceUnit.read(path)
        except ScanError as e:
            status(str(e), style="warning")
            continue
        manifests.append(build_manifest(path, unit.content))

    if as_json:
        click.echo(json.dumps([m.to_dict() for m in manifests], indent=2))
        return

    operations = sum(len(m.operations) for m in manifests)
    get_console().print(make_manifest_table(manifests))
    status(
        f"{pluralize(operations, 'operation')} across {pluralize(len(manifests), 'route module')}",
        style="success",
    )
